from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo
import logging
import uuid

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import get_settings
from errors import ErrorKind, ExtractionError, ProviderConfigError
from extractor import Extractor
from models import ParseTaskRequest, ParseTaskResponse, Task, TaskCreate, TaskUpdate
from pipeline import extract_and_confirm
from providers import build_provider
import database

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    database.init_db()
    app.state.tz = ZoneInfo(settings.app_timezone)
    try:
        provider = build_provider(settings)
    except ProviderConfigError as e:
        logger.warning("Natural-language parsing disabled: %s", e)
        provider = None
    app.state.extractor = (
        Extractor(provider, model=settings.model_name, max_tokens=settings.llm_max_tokens)
        if provider else None
    )
    yield
    # Shutdown
    if provider is not None:
        await provider.aclose()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Parse failures share one user-facing message; the kind tells the client why
UNPARSEABLE_KINDS = {ErrorKind.EMPTY_RESPONSE, ErrorKind.MALFORMED_RESPONSE, ErrorKind.MISSING_TITLE}


@app.exception_handler(ExtractionError)
async def extraction_error_handler(_request: Request, exc: ExtractionError) -> JSONResponse:
    if exc.kind in UNPARSEABLE_KINDS:
        return JSONResponse(
            status_code=422,
            content={"detail": "Could not understand that task. Try rephrasing it.", "kind": exc.kind.value},
        )
    return JSONResponse(
        status_code=502,
        content={"detail": "Task parsing service is unavailable. Try again later.", "kind": exc.kind.value},
    )


def get_extractor(request: Request) -> Extractor:
    extractor = getattr(request.app.state, "extractor", None)
    if extractor is None:
        raise HTTPException(status_code=503, detail="API key not configured")
    return extractor


def get_timezone(request: Request) -> ZoneInfo:
    return getattr(request.app.state, "tz", None) or ZoneInfo(settings.app_timezone)


@app.get("/tasks")
def get_tasks(due_from: Optional[datetime] = None, due_to: Optional[datetime] = None) -> list[Task]:
    return database.get_all_tasks(due_from, due_to)


@app.post("/tasks")
def create_task(task_data: TaskCreate) -> Task:
    task_id = str(uuid.uuid4())
    return database.create_task_db(
        task_id,
        task_data.title,
        task_data.description,
        task_data.due_date,
        task_data.priority,
        task_data.estimated_time,
        task_data.category,
    )


@app.patch("/tasks/{task_id}")
def update_task(task_id: str, task_data: TaskUpdate) -> Task:
    result = database.update_task_db(task_id, **task_data.model_dump(exclude_unset=True))
    if not result:
        raise HTTPException(status_code=404, detail="Task not found")
    return result


@app.delete("/tasks/{task_id}")
def delete_task(task_id: str) -> dict:
    if not database.delete_task_db(task_id):
        raise HTTPException(status_code=404, detail="Task not found")
    return {"status": "deleted"}


@app.post("/ai/parse-task")
async def parse_task(
    parse_request: ParseTaskRequest,
    extractor: Extractor = Depends(get_extractor),
    tz: ZoneInfo = Depends(get_timezone),
) -> ParseTaskResponse:
    """Create a task from natural language and return it with a confirmation message."""
    if not parse_request.input.strip():
        raise HTTPException(status_code=422, detail="Input must not be empty")

    outcome = await extract_and_confirm(parse_request.input, extractor, tz)
    parsed = outcome.task
    task = database.create_task_db(
        str(uuid.uuid4()),
        parsed.title,
        parsed.description,
        parsed.due_date,
        parsed.priority,
        parsed.estimated_time,
        parsed.category,
    )
    return ParseTaskResponse(task=task, message=outcome.message)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
