from typing import Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field
from slowapi import Limiter
from slowapi.util import get_remote_address

from megafire.config import settings
from megafire.core.exceptions import InvalidBetError
from megafire.core.logger import get_logger
from megafire.core.roulette.board import BettingGrid
from megafire.core.roulette.history import calculate_stats
from megafire.core.roulette.racetrack import CALL_BETS, Racetrack
from megafire.core.roulette.strategies import (
    PRESET_STRATEGIES,
    get_preset,
    normalize_layout,
    strategy_from_record,
)
from megafire.core.table import RouletteTable

# Rate limiting setup
limiter = Limiter(key_func=get_remote_address)

logger = get_logger("api")

router = APIRouter()

# ==================== Request Models ====================


class BetRequest(BaseModel):
    bet_id: str
    amount: Optional[int] = None


class ChipRequest(BaseModel):
    value: int


class BoardPoint(BaseModel):
    x: float
    y: float
    precision: bool = False
    amount: Optional[int] = None


class TrackPoint(BaseModel):
    x: float
    y: float


class StrategyRequest(BaseModel):
    name: str = Field(min_length=1, max_length=40)
    bets: Dict[str, int]
    description: str = ""
    color_code: str = "#3b82f6"


class ApplyStrategyRequest(BaseModel):
    chip_value: Optional[int] = None


class BonusCollectRequest(BaseModel):
    multiplier: Optional[int] = None


# ==================== Helpers ====================


def get_table(request: Request) -> RouletteTable:
    return request.app.state.table


def get_db(request: Request):
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise HTTPException(status_code=503, detail="Storage unavailable")
    return db


def get_grid(request: Request) -> BettingGrid:
    board = get_table(request).config.board
    return BettingGrid(board.width, board.height, board.edge_slop)


def get_racetrack(request: Request) -> Racetrack:
    track = get_table(request).config.racetrack
    return Racetrack(track.width, track.height, track.padding, track.track_thickness)


def require(table: RouletteTable, ok: bool) -> dict:
    """Turn a rejected table action into a 400 carrying the reason."""
    if not ok:
        raise HTTPException(status_code=400, detail=table.last_rejection or "Rejected")
    return table.state()


def get_rate_limit():
    """Get rate limit string from config."""
    return settings.rate_limit.game_requests if settings.rate_limit.enabled else "1000/minute"


def get_api_rate_limit():
    return settings.rate_limit.api_requests if settings.rate_limit.enabled else "1000/minute"


# ==================== Table ====================


@router.get("/table")
async def get_table_state(request: Request):
    return get_table(request).state()


@router.post("/bets")
@limiter.limit(get_api_rate_limit)
async def place_bet(request: Request, data: BetRequest):
    table = get_table(request)
    return require(table, table.place_bet(data.bet_id, data.amount))


@router.post("/bets/undo")
async def undo_bet(request: Request):
    table = get_table(request)
    return require(table, table.undo_last())


@router.post("/bets/clear")
async def clear_bets(request: Request):
    table = get_table(request)
    return require(table, table.clear_bets())


@router.post("/bets/rebet")
async def rebet(request: Request):
    table = get_table(request)
    return require(table, table.rebet())


@router.post("/chips")
async def select_chip(request: Request, data: ChipRequest):
    table = get_table(request)
    return require(table, table.set_chip_value(data.value))


# ==================== Board & Racetrack ====================


@router.post("/board/hit")
async def board_hit(request: Request, data: BoardPoint):
    target = get_grid(request).resolve(data.x, data.y, data.precision)
    return {"target": target.to_dict() if target else None}


@router.post("/board/place")
@limiter.limit(get_api_rate_limit)
async def board_place(request: Request, data: BoardPoint):
    table = get_table(request)
    target = get_grid(request).resolve(data.x, data.y, data.precision)
    if target is None:
        raise HTTPException(status_code=400, detail="Outside the betting grid")
    state = require(table, table.place_bet(target.bet_id, data.amount))
    return {"target": target.to_dict(), **state}


@router.get("/racetrack")
async def racetrack_layout(request: Request):
    track = get_racetrack(request)
    return {
        "width": track.width,
        "height": track.height,
        "segments": [segment.to_dict() for segment in track.segments()],
        "zones": [zone.to_dict() for zone in track.zones()],
        "call_bets": CALL_BETS,
    }


@router.post("/racetrack/hit")
async def racetrack_hit(request: Request, data: TrackPoint):
    """A pocket tap is a straight bet, a zone tap its call bet."""
    table = get_table(request)
    track = get_racetrack(request)
    segment = track.segment_at(data.x, data.y)
    if segment is not None:
        return require(table, table.place_bet(str(segment.number)))
    zone = track.zone_at(data.x, data.y)
    if zone is not None:
        return require(table, table.place_call_bet(zone.name))
    raise HTTPException(status_code=400, detail="Outside the racetrack")


@router.post("/racetrack/{zone}")
async def call_bet(request: Request, zone: str):
    table = get_table(request)
    if zone.upper() not in CALL_BETS:
        raise HTTPException(status_code=404, detail="Unknown call bet")
    return require(table, table.place_call_bet(zone))


# ==================== Strategies ====================


@router.get("/strategies")
async def list_strategies(request: Request):
    db = getattr(request.app.state, "db", None)
    saved = db.list_strategies() if db is not None else []
    return {
        "presets": [strategy.to_dict() for strategy in PRESET_STRATEGIES],
        "saved": [strategy_from_record(record).to_dict() for record in saved],
    }


@router.post("/strategies")
async def save_strategy(request: Request, data: StrategyRequest):
    db = get_db(request)
    try:
        layout = normalize_layout(data.bets)
    except (InvalidBetError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    record = db.save_strategy(data.name, layout, data.description, data.color_code)
    return strategy_from_record(record).to_dict()


@router.delete("/strategies/{strategy_id}")
async def delete_strategy(request: Request, strategy_id: str):
    if get_preset(strategy_id):
        raise HTTPException(status_code=400, detail="Preset strategies cannot be deleted")
    if not get_db(request).delete_strategy(strategy_id):
        raise HTTPException(status_code=404, detail="Strategy not found")
    return {"success": True}


@router.post("/strategies/{strategy_id}/apply")
async def apply_strategy(request: Request, strategy_id: str, data: ApplyStrategyRequest = None):
    table = get_table(request)
    strategy = get_preset(strategy_id)
    if strategy is None:
        db = getattr(request.app.state, "db", None)
        record = db.get_strategy(strategy_id) if db is not None else None
        if record is None:
            raise HTTPException(status_code=404, detail="Strategy not found")
        strategy = strategy_from_record(record)
    chip_value = data.chip_value if data else None
    return require(table, table.apply_strategy(strategy, chip_value))


# ==================== Round ====================


@router.post("/spin")
@limiter.limit(get_rate_limit)
async def spin(request: Request):
    table = get_table(request)
    state = require(table, table.trigger_spin())
    logger.info(f"Spin started, winning number drawn: {table.winning_number}")
    return state


@router.post("/bonus/collect")
@limiter.limit(get_rate_limit)
async def collect_bonus(request: Request, data: BonusCollectRequest = None):
    table = get_table(request)
    external = None
    if data is not None and data.multiplier is not None:
        external = {"multiplier": data.multiplier}
    result = table.collect_bonus(external)
    if result is None:
        raise HTTPException(status_code=400, detail=table.last_rejection)
    # The collected outcome overrides the state's pending-bonus summary
    return {**table.state(), "bonus": result.to_dict()}


# ==================== History ====================


@router.get("/history")
async def get_history(request: Request):
    table = get_table(request)
    db = getattr(request.app.state, "db", None)
    return {
        "recent": [entry.to_dict() for entry in table.history.recent()],
        "full": [entry.to_dict() for entry in table.history.full()],
        "rounds": db.get_recent_rounds(50) if db is not None else [],
    }


@router.get("/history/stats")
async def get_history_stats(request: Request):
    return calculate_stats(get_table(request).history.full())
