from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .bootstrap import initialize_database
from .communication import CommunicationService
from .config import Settings, load_settings
from .db import Database
from .errors import DatabaseUnavailable, InvalidRequest
from .executor import QueryExecutor, normalize_rows
from .llm_client import LLMClient, build_llm_client
from .logging_utils import configure_logging, get_logger
from .models import AcsTokenResponse, ErrorResponse, SendSmsResponse
from .observability import count_request, init_metrics_server
from .pipeline import SQLGenerationPipeline
from .sql_validator import SQLValidator

logger = get_logger(__name__)

CUSTOMERS_SQL = "SELECT * FROM get_customers()"
SMS_FIELDS_REQUIRED = "Message and toPhone must be provided!"
ERROR_RESPONSES = {400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=jsonable_encoder(ErrorResponse(error=message)))


def _text_field(body: Any, name: str) -> Optional[str]:
    """Read a string field from a JSON body of any shape; anything else counts as missing."""
    if not isinstance(body, dict):
        return None
    value = body.get(name)
    return value if isinstance(value, str) else None


def create_app(
    settings: Settings | None = None,
    *,
    db: Optional[Database] = None,
    llm_client: Optional[LLMClient] = None,
    communication: Optional[CommunicationService] = None,
) -> FastAPI:
    settings = settings or load_settings()
    configure_logging(settings.app.log_level, settings.app.json_logs)
    init_metrics_server(settings.observability)

    app = FastAPI(title="CRM API", version="0.1.0")

    @app.exception_handler(RequestValidationError)
    async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("invalid_request_body", path=request.url.path, errors=str(exc.errors()))
        if request.url.path.endswith("/sendsms"):
            return JSONResponse(status_code=400, content={"status": False, "message": SMS_FIELDS_REQUIRED})
        return _error(400, "Invalid request body.")

    db = db or Database(settings.postgres)
    llm_client = llm_client or build_llm_client(settings.llm)
    communication = communication or CommunicationService(settings.communication)
    validator = SQLValidator(settings.security)
    executor = QueryExecutor(db, validator, max_rows=settings.postgres.max_rows)
    pipeline = SQLGenerationPipeline(llm_client, executor)

    @app.on_event("startup")
    async def _startup() -> None:
        try:
            await db.connect()
        except DatabaseUnavailable as exc:
            logger.error("db_connect_failed", error=str(exc))
        else:
            if settings.postgres.initialize_schema:
                await initialize_database(db)
        logger.info("app_started", environment=settings.environment)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await db.close()
        await llm_client.aclose()
        logger.info("app_shutdown")

    async def get_db() -> Database:
        return db

    async def get_pipeline() -> SQLGenerationPipeline:
        return pipeline

    async def get_communication() -> CommunicationService:
        return communication

    router = APIRouter()

    @router.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    @router.get("/customers", responses=ERROR_RESPONSES)
    async def get_customers(database: Database = Depends(get_db)):
        try:
            rows = normalize_rows(await database.query(CUSTOMERS_SQL))
        except Exception as exc:  # noqa: BLE001
            logger.exception("customers_failed", error_kind=type(exc).__name__, error=str(exc))
            count_request("customers", 500)
            return _error(500, "Error retrieving customers.")
        count_request("customers", 200)
        return rows

    @router.get("/acstoken", response_model=AcsTokenResponse, responses=ERROR_RESPONSES)
    async def get_acs_token(service: CommunicationService = Depends(get_communication)):
        try:
            token = await service.issue_voice_token()
        except Exception as exc:  # noqa: BLE001
            logger.exception("acstoken_failed", error_kind=type(exc).__name__, error=str(exc))
            count_request("acstoken", 500)
            return _error(500, "Error issuing communication token.")
        count_request("acstoken", 200)
        return AcsTokenResponse(userId=token.user_id, token=token.token, expiresOn=token.expires_on)

    @router.post("/sendsms", response_model=SendSmsResponse)
    async def send_sms(
        body: Any = Body(None),
        service: CommunicationService = Depends(get_communication),
    ):
        try:
            result = await service.send_sms(_text_field(body, "message"), _text_field(body, "toPhone"))
        except InvalidRequest as exc:
            count_request("sendsms", 400)
            return JSONResponse(status_code=400, content={"status": False, "message": str(exc)})
        except Exception as exc:  # noqa: BLE001
            logger.exception("sendsms_failed", error_kind=type(exc).__name__, error=str(exc))
            count_request("sendsms", 500)
            return JSONResponse(
                status_code=500,
                content={"status": False, "messageId": "", "message": str(exc)},
            )
        count_request("sendsms", 200)
        return SendSmsResponse(
            status=result.successful,
            messageId=result.message_id,
            message=result.error_message,
        )

    @router.post("/generatesql", responses=ERROR_RESPONSES)
    async def generate_sql(
        body: Any = Body(None),
        sql_pipeline: SQLGenerationPipeline = Depends(get_pipeline),
    ):
        try:
            rows = await sql_pipeline.handle(_text_field(body, "query"))
        except InvalidRequest as exc:
            count_request("generatesql", 400)
            return _error(400, str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("generatesql_failed", error_kind=type(exc).__name__, error=str(exc))
            count_request("generatesql", 500)
            return _error(500, "Error generating SQL query.")
        count_request("generatesql", 200)
        return rows

    app.include_router(router, prefix=settings.app.api_prefix)
    return app


__all__ = ["create_app"]
