"""FastAPI server exposing the wardrobe, outfit and account endpoints."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from auth.accounts import public_profile
from drobeo_app.app import WardrobeApp
from drobeo_app.errors import UnauthorizedError, ValidationFailedError, WardrobeError
from drobeo_app.logging_config import correlation_context, get_logger, log_event
from models.user import User

LOGGER = get_logger(__name__)

MAX_IMAGE_BYTES = 10 * 1024 * 1024


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    return token.strip() if scheme.lower() == "bearer" else None


def create_app(wardrobe_app: WardrobeApp | None = None) -> FastAPI:
    """Build the HTTP surface around ``wardrobe_app``."""

    drobeo = wardrobe_app or WardrobeApp()
    tools = drobeo.wardrobe_tools
    app = FastAPI(title="Drobeo", version="0.1.0")

    @app.middleware("http")
    async def correlation_middleware(request: Request, call_next: Callable) -> Response:
        with correlation_context(request.headers.get("x-correlation-id")) as correlation_id:
            response = await call_next(request)
            response.headers["x-correlation-id"] = correlation_id
            return response

    @app.exception_handler(WardrobeError)
    async def wardrobe_error_handler(request: Request, exc: WardrobeError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = [
            {"field": ".".join(str(part) for part in error.get("loc", ())), "message": str(error.get("msg"))}
            for error in exc.errors()
        ]
        error = ValidationFailedError("Invalid request", fields=fields)
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log_event(
            LOGGER,
            logging.ERROR,
            "request_failed",
            path=request.url.path,
            method=request.method,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"error": "internal_error", "message": "Internal server error"})

    def current_user_id(authorization: Optional[str] = Header(default=None)) -> int:
        user_id = drobeo.tokens.verify(_bearer_token(authorization))
        if drobeo.store.get_user(user_id) is None:
            raise UnauthorizedError("Authentication required")
        return user_id

    def session_response(user: User) -> Dict[str, Any]:
        return {"user": public_profile(user), "token": drobeo.tokens.issue(user.id)}

    @app.get("/healthz")
    def healthcheck() -> dict:
        """Lightweight readiness probe."""

        return {
            "status": "ok",
            "service": "drobeo",
            "environment": drobeo.config.environment or "local",
            "storage": drobeo.config.storage_backend,
        }

    # Auth
    @app.post("/api/auth/signup", status_code=201)
    def signup(payload: Dict[str, Any] = Body(...)) -> dict:
        return session_response(drobeo.accounts.signup(payload))

    @app.post("/api/auth/login")
    def login(payload: Dict[str, Any] = Body(...)) -> dict:
        return session_response(drobeo.accounts.login(payload.get("email"), payload.get("password")))

    @app.post("/api/auth/logout")
    def logout() -> dict:
        return {"message": "Logged out successfully"}

    @app.post("/api/auth/phone/request-code")
    def request_phone_code(payload: Dict[str, Any] = Body(...)) -> dict:
        drobeo.accounts.request_phone_code(payload)
        return {"message": "Verification code sent successfully"}

    @app.post("/api/auth/phone/verify")
    def verify_phone(payload: Dict[str, Any] = Body(...)) -> dict:
        return session_response(drobeo.accounts.verify_phone(payload))

    @app.post("/api/auth/phone/login")
    def phone_login(payload: Dict[str, Any] = Body(...)) -> dict:
        return session_response(drobeo.accounts.phone_login(payload))

    @app.get("/api/auth/user")
    def get_current_user(user_id: int = Depends(current_user_id)) -> dict:
        return public_profile(drobeo.accounts.get_user(user_id))

    @app.post("/api/auth/complete-onboarding")
    def complete_onboarding(payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)) -> dict:
        user = drobeo.accounts.complete_onboarding(user_id, payload.get("preferences"))
        return {"user": public_profile(user)}

    # Categories
    @app.get("/api/categories")
    def list_categories() -> List[dict]:
        return tools.list_categories()

    @app.post("/api/categories", status_code=201)
    def create_category(payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)) -> dict:
        return tools.create_category(payload)

    # Clothing items
    @app.get("/api/clothing-items")
    def list_clothing_items(request: Request, user_id: int = Depends(current_user_id)) -> List[dict]:
        return tools.list_clothing_items(user_id, dict(request.query_params))

    @app.get("/api/clothing-items/recent")
    def recent_clothing_items(limit: int = 4, user_id: int = Depends(current_user_id)) -> List[dict]:
        return tools.recent_clothing_items(user_id, limit)

    @app.get("/api/clothing-items/{item_id}")
    def get_clothing_item(item_id: int, user_id: int = Depends(current_user_id)) -> dict:
        return tools.get_clothing_item(user_id, item_id)

    @app.post("/api/clothing-items", status_code=201)
    async def create_clothing_item(request: Request, user_id: int = Depends(current_user_id)) -> dict:
        image: Optional[bytes] = None
        mime_type = "image/jpeg"
        if request.headers.get("content-type", "").startswith("multipart/form-data"):
            form = await request.form()
            fields: Dict[str, Any] = {}
            for key, value in form.multi_items():
                if isinstance(value, UploadFile):
                    if key != "image":
                        continue
                    mime_type = value.content_type or mime_type
                    if not mime_type.startswith("image/"):
                        raise ValidationFailedError.for_field("image", "Only image files are allowed")
                    image = await value.read()
                    if len(image) > MAX_IMAGE_BYTES:
                        raise ValidationFailedError.for_field("image", "Image exceeds the 10MB limit")
                else:
                    fields[key] = value
        else:
            try:
                fields = await request.json()
            except ValueError as exc:
                raise ValidationFailedError("Request body must be JSON") from exc
            if not isinstance(fields, dict):
                raise ValidationFailedError("Request body must be a JSON object")
        return await run_in_threadpool(tools.add_clothing_item, user_id, fields, image, mime_type)

    @app.put("/api/clothing-items/{item_id}")
    def update_clothing_item(
        item_id: int, payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)
    ) -> dict:
        return tools.update_clothing_item(user_id, item_id, payload)

    @app.delete("/api/clothing-items/{item_id}", status_code=204)
    def delete_clothing_item(item_id: int, user_id: int = Depends(current_user_id)) -> Response:
        tools.delete_clothing_item(user_id, item_id)
        return Response(status_code=204)

    @app.post("/api/clothing-items/{item_id}/worn")
    def mark_item_worn(item_id: int, user_id: int = Depends(current_user_id)) -> dict:
        return tools.mark_item_worn(user_id, item_id)

    # Outfits
    @app.get("/api/outfits")
    def list_outfits(request: Request, user_id: int = Depends(current_user_id)) -> List[dict]:
        return tools.list_outfits(user_id, dict(request.query_params))

    @app.post("/api/outfits/generate")
    def generate_outfits(payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)) -> List[dict]:
        return drobeo.outfit_recommender.generate_outfits(user_id, payload)

    @app.get("/api/outfits/{outfit_id}")
    def get_outfit(outfit_id: int, user_id: int = Depends(current_user_id)) -> dict:
        return tools.get_outfit(user_id, outfit_id)

    @app.post("/api/outfits", status_code=201)
    def create_outfit(payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)) -> dict:
        return tools.create_outfit(user_id, payload)

    @app.put("/api/outfits/{outfit_id}")
    def update_outfit(
        outfit_id: int, payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)
    ) -> dict:
        return tools.update_outfit(user_id, outfit_id, payload)

    @app.delete("/api/outfits/{outfit_id}", status_code=204)
    def delete_outfit(outfit_id: int, user_id: int = Depends(current_user_id)) -> Response:
        tools.delete_outfit(user_id, outfit_id)
        return Response(status_code=204)

    @app.post("/api/outfits/{outfit_id}/worn")
    def mark_outfit_worn(outfit_id: int, user_id: int = Depends(current_user_id)) -> dict:
        return tools.mark_outfit_worn(user_id, outfit_id)

    # Style advice
    @app.post("/api/style-advice")
    def style_advice(payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)) -> dict:
        return {"advice": drobeo.style_advisor.advise(user_id, payload.get("question"))}

    # Calendar
    @app.get("/api/calendar")
    def list_calendar(
        startDate: Optional[str] = None,  # noqa: N803
        endDate: Optional[str] = None,  # noqa: N803
        user_id: int = Depends(current_user_id),
    ) -> List[dict]:
        return tools.list_calendar(user_id, startDate, endDate)

    @app.post("/api/calendar", status_code=201)
    def create_calendar_entry(payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)) -> dict:
        return tools.create_calendar_entry(user_id, payload)

    @app.put("/api/calendar/{entry_id}")
    def update_calendar_entry(
        entry_id: int, payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)
    ) -> dict:
        return tools.update_calendar_entry(user_id, entry_id, payload)

    @app.delete("/api/calendar/{entry_id}", status_code=204)
    def delete_calendar_entry(entry_id: int, user_id: int = Depends(current_user_id)) -> Response:
        tools.delete_calendar_entry(user_id, entry_id)
        return Response(status_code=204)

    # Wishlist
    @app.get("/api/wishlist")
    def list_wishlist(user_id: int = Depends(current_user_id)) -> List[dict]:
        return tools.list_wishlist(user_id)

    @app.post("/api/wishlist", status_code=201)
    def create_wishlist_item(payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)) -> dict:
        return tools.create_wishlist_item(user_id, payload)

    @app.put("/api/wishlist/{item_id}")
    def update_wishlist_item(
        item_id: int, payload: Dict[str, Any] = Body(...), user_id: int = Depends(current_user_id)
    ) -> dict:
        return tools.update_wishlist_item(user_id, item_id, payload)

    @app.delete("/api/wishlist/{item_id}", status_code=204)
    def delete_wishlist_item(item_id: int, user_id: int = Depends(current_user_id)) -> Response:
        tools.delete_wishlist_item(user_id, item_id)
        return Response(status_code=204)

    # Stats
    @app.get("/api/stats")
    def user_stats(user_id: int = Depends(current_user_id)) -> dict:
        return tools.get_user_stats(user_id)

    return app


def get_app() -> FastAPI:
    """ASGI factory reading configuration from the environment."""

    return create_app()


if __name__ == "__main__":
    import uvicorn

    from drobeo_app.logging_config import configure_logging

    configure_logging()
    uvicorn.run("server.api:get_app", factory=True, host="0.0.0.0", port=8080, reload=False)
