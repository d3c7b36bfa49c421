import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse

from board import Board, LevelConfig
from game import GameSession, PourResult
from generate_level import DEFAULT_CONFIG
from logger_config import configure_logging
from obstacles import PartialCover, deserialize_obstacles
from schemas import ClickRequest, LoadLevelRequest, NewGameRequest, PourRequest
from scores import DailyScoreStore, ScoreStore
from settings import settings

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Fruit Sort API", version="1.0.0")

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

session = GameSession()
score_store = ScoreStore(settings.SCORES_FILE)
daily_store = DailyScoreStore(settings.DAILY_SCORES_FILE)
_subscribers: set[asyncio.Queue[tuple[str, dict]]] = set()


def _publish(event: str, data: dict) -> None:
    for queue in list(_subscribers):
        try:
            queue.put_nowait((event, data))
        except asyncio.QueueFull:
            logger.warning("dropping %s event for a slow subscriber", event)


def _action_response(result: PourResult) -> dict:
    state = session.snapshot()
    _publish("state", state)
    return {"success": result.ok, "message": result.message, "won": result.won, "state": state}


def _level_config(request: NewGameRequest) -> Optional[LevelConfig]:
    if all(v is None for v in (request.active, request.empty, request.types, request.obstacles)):
        return None
    tier = DEFAULT_CONFIG[request.tier]
    active = request.active if request.active is not None else tier["active"]
    empty = request.empty if request.empty is not None else tier["empty"]
    obstacles = request.obstacles if request.obstacles is not None else tier["obstacles"]
    types = request.types if request.types is not None else active - empty
    return LevelConfig(active=active, empty=empty, types=types, obstacles=obstacles)


async def _read_body(request: Request) -> Optional[dict]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return body if isinstance(body, dict) else None


@app.get("/events")
async def sse_stream() -> StreamingResponse:
    queue: asyncio.Queue[tuple[str, dict]] = asyncio.Queue()
    _subscribers.add(queue)
    # Immediately replay the current board to the new subscriber, if available
    if session.board is not None:
        queue.put_nowait(("state", session.snapshot()))

    async def event_generator() -> AsyncGenerator[str, None]:
        try:
            # Initial comment to open the stream
            yield ": connected\n\n"
            while True:
                event, data = await queue.get()
                yield f"event: {event}\ndata: {json.dumps(data)}\n\n"
        finally:
            _subscribers.discard(queue)

    return StreamingResponse(event_generator(), media_type="text/event-stream")


@app.get("/health")
async def health_check():
    return {"status": "healthy", "message": "API is running successfully"}


@app.post("/game/new")
async def new_game(request: NewGameRequest):
    if request.tier not in DEFAULT_CONFIG:
        return {"success": False, "message": f"Unknown tier {request.tier}"}
    try:
        config = _level_config(request)
        session.new_game(config, tier=request.tier, seed=request.seed,
                         cover_seed=request.cover_seed, daily=request.daily)
    except ValueError as e:
        return {"success": False, "message": str(e)}

    state = session.snapshot()
    _publish("state", state)
    return {"success": True, "message": "New game started", "state": state}


@app.post("/game/load")
async def load_level(request: LoadLevelRequest):
    if request.tier not in DEFAULT_CONFIG:
        return {"success": False, "message": f"Unknown tier {request.tier}"}
    if not 0 < request.active <= len(request.glasses):
        return {"success": False, "message": "Invalid active glass count"}
    if any(len(g) > request.capacity for g in request.glasses):
        return {"success": False, "message": "Glass over capacity"}
    try:
        obstacles = deserialize_obstacles({key: cover.model_dump() for key, cover in request.obstacles.items()})
    except (KeyError, ValueError) as e:
        return {"success": False, "message": f"Invalid obstacles: {e}"}
    if any(not 0 <= index < request.active or not request.glasses[index] for index in obstacles):
        return {"success": False, "message": "Covers must sit on non-empty glasses in play"}
    if any(isinstance(cover, PartialCover) and max(cover.positions) >= len(request.glasses[index])
           for index, cover in obstacles.items()):
        return {"success": False, "message": "Cover positions must be inside the glass"}

    board = Board.from_dict({"glasses": request.glasses, "active": request.active, "capacity": request.capacity})
    if board.is_solved():
        return {"success": False, "message": "Layout is already solved"}
    session.tier = request.tier
    session.seed = request.seed
    session.daily = None
    session.difficulty = request.difficulty
    session.load(board, obstacles)

    state = session.snapshot()
    _publish("state", state)
    return {"success": True, "message": "Level loaded", "state": state}


@app.get("/game/state")
async def get_state():
    return session.snapshot()


@app.post("/game/click")
async def click_glass(request: ClickRequest):
    return _action_response(session.click(request.index))


@app.post("/game/pour")
async def pour(request: PourRequest):
    return _action_response(session.pour(request.src, request.dst))


@app.post("/game/reset")
async def reset_board():
    if session.board is None:
        return {"success": False, "message": "No game to reset"}
    session.reset()
    state = session.snapshot()
    _publish("state", state)
    return {"success": True, "message": "Board reset successfully", "state": state}


@app.get("/scores")
async def get_scores():
    return score_store.load()


@app.post("/scores")
async def save_score(request: Request):
    body = await _read_body(request)
    if body is None:
        return {"ok": False, "error": "Invalid request body"}
    return score_store.submit(body.get("name", "Player"), body.get("score", 0), body.get("diff", "normal"))


@app.get("/scores/daily")
async def get_daily_scores(date: Optional[str] = None):
    return daily_store.load(date)


@app.post("/scores/daily")
async def save_daily_score(request: Request):
    body = await _read_body(request)
    if body is None:
        return {"ok": False, "error": "Invalid request body"}
    return daily_store.submit(body.get("name", "Player"), body.get("score", 0),
                              body.get("diff", "normal"), body.get("date"))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
