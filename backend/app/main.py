import json
import logging
import time
import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import QuizError
from app.routers import health, me, quizzes


def _parse_csv(value: str) -> list[str]:
    return [x.strip() for x in str(value or "").split(",") if x.strip()]


def _request_id(request: Request) -> str | None:
    rid = getattr(getattr(request, "state", None), "request_id", None)
    rid = str(rid or "").strip()
    return rid or None


def _validation_messages(exc: RequestValidationError) -> list[str]:
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        msg = str(err.get("msg") or "invalid value")
        out.append(f"{'.'.join(loc)}: {msg}" if loc else msg)
    return out


def create_app() -> FastAPI:
    level = getattr(logging, str(settings.log_level or "info").upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    app = FastAPI(title="Campus Quiz API", version="1.0.0")

    logger = logging.getLogger("campus_quiz")

    allow_origins = _parse_csv(settings.cors_allow_origins)
    is_prod = (settings.app_env or "").strip().lower() in {"prod", "production"}

    allow_methods_raw = str(settings.cors_allow_methods or "*").strip()
    allow_headers_raw = str(settings.cors_allow_headers or "*").strip()
    if is_prod:
        allow_methods = ["GET", "POST", "PUT", "DELETE", "OPTIONS"] if allow_methods_raw == "*" else _parse_csv(allow_methods_raw)
        allow_headers = (
            ["authorization", "content-type", "x-request-id"] if allow_headers_raw == "*" else _parse_csv(allow_headers_raw)
        )
    else:
        allow_methods = ["*"] if allow_methods_raw == "*" else _parse_csv(allow_methods_raw)
        allow_headers = ["*"] if allow_headers_raw == "*" else _parse_csv(allow_headers_raw)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        status_code: int | None = None
        try:
            response = await call_next(request)
            status_code = int(getattr(response, "status_code", 0) or 0)
        except Exception:
            status_code = 500
            raise
        finally:
            path = getattr(getattr(request, "url", None), "path", "")
            if not path.startswith("/health"):
                logger.info(
                    json.dumps(
                        {
                            "ts": datetime.now(timezone.utc).isoformat(),
                            "rid": rid,
                            "user_id": getattr(getattr(request, "state", None), "user_id", None),
                            "method": request.method,
                            "path": path,
                            "status": status_code,
                            "duration_ms": int((time.perf_counter() - t0) * 1000),
                        },
                        ensure_ascii=False,
                    )
                )
        response.headers["X-Request-ID"] = rid

        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if is_prod:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    @app.exception_handler(QuizError)
    async def quiz_error_handler(request: Request, exc: QuizError):
        payload = {"ok": False, **exc.payload(), "request_id": _request_id(request)}
        return JSONResponse(status_code=int(exc.status_code), content=payload)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        messages = _validation_messages(exc)
        payload = {
            "ok": False,
            "error_code": "validation_error",
            "error_message": messages[0] if len(messages) == 1 else f"{len(messages)} validation errors",
            "errors": messages,
            "request_id": _request_id(request),
        }
        return JSONResponse(status_code=400, content=payload)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        detail = exc.detail
        if isinstance(detail, dict):
            error_code = str(detail.get("error_code") or "http_error")
            error_message = str(detail.get("error_message") or detail.get("detail") or "request failed")
        else:
            code = int(exc.status_code)
            error_code = {401: "unauthorized", 403: "forbidden", 404: "not_found", 429: "rate_limited"}.get(code, "http_error")
            error_message = str(detail or "request failed")

        payload = {
            "ok": False,
            "error_code": error_code,
            "error_message": error_message,
            "request_id": _request_id(request),
        }
        return JSONResponse(status_code=int(exc.status_code), content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.exception("unhandled exception", extra={"rid": rid})
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error_code": "internal_error",
                "error_message": "internal server error",
                "request_id": rid,
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=allow_methods,
        allow_headers=allow_headers,
    )

    app.include_router(health.router)
    app.include_router(quizzes.router)
    app.include_router(me.router)

    return app


app = create_app()
