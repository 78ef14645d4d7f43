# app/core/errors.py
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException


class AppError(Exception):
    """
    業務層錯誤的共同基底。
      - message：可以直接給使用者看的訊息
      - source：造成錯誤的欄位（例如 email）
      - code：機器可讀的錯誤代碼（例如 EMAIL_NOT_VERIFIED）
      - reason：只寫進 log，不會回給前端
    """

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        source: Optional[str] = None,
        code: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.source = source
        self.code = code
        self.reason = reason
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status_code,
            "code": self.code,
            "message": self.message,
            "source": self.source,
        }


class BadRequestError(AppError):
    status_code = 400
    default_message = "Bad request"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized access"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "This action is unauthorized"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class TooManyRequestsError(AppError):
    status_code = 429
    default_message = "Too many requests. Please try again later."

    def __init__(self, message: Optional[str] = None, *, retry_after: int = 0, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class WorkspaceMismatchError(RuntimeError):
    """資料完整性錯誤：blog 不屬於傳入的 workspace。不是拒絕，而是程式/資料出錯。"""

    def __init__(self, workspace_id: str, blog_workspace_id: str) -> None:
        self.workspace_id = workspace_id
        self.blog_workspace_id = blog_workspace_id
        super().__init__(
            f"Workspace mismatch (workspace_id={workspace_id}, blog_workspace_id={blog_workspace_id})"
        )


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        log = logger.bind(path=request.url.path, status=exc.status_code, reason=exc.reason)
        if exc.status_code >= 500:
            log.error(exc.message)
        else:
            log.warning(exc.message)

        headers = None
        if isinstance(exc, TooManyRequestsError) and exc.retry_after:
            headers = {"Retry-After": str(exc.retry_after)}
        elif isinstance(exc, UnauthorizedError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(WorkspaceMismatchError)
    async def mismatch_handler(request: Request, exc: WorkspaceMismatchError):
        logger.bind(
            path=request.url.path,
            workspace_id=exc.workspace_id,
            blog_workspace_id=exc.blog_workspace_id,
        ).error("Workspace mismatch")
        return JSONResponse(
            status_code=500,
            content={"status": 500, "code": None, "message": "Internal server error", "source": None},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        # 統一輸出格式
        return JSONResponse(
            status_code=exc.status_code,
            content={"status": exc.status_code, "code": None, "message": exc.detail, "source": None},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        # 客製化，但保持資訊節制
        return JSONResponse(
            status_code=422,
            content={"status": 422, "message": "Validation error", "errors": jsonable_errors(exc)},
        )

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        # 小強化：避免洩露伺服器細節
        resp = await call_next(request)
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        return resp


def jsonable_errors(exc: RequestValidationError) -> list:
    # pydantic 的 ctx 可能含有 Exception 物件，無法直接序列化
    errors = []
    for err in exc.errors():
        item = {k: v for k, v in err.items() if k not in ("ctx", "input", "url")}
        errors.append(item)
    return errors
