"""JSON endpoints exposing registration, login and distribution groups."""
from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import FastAPI, Form, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.middleware.sessions import SessionMiddleware

from .config import Settings, load_settings
from .errors import DuplicateError, NotFoundError, StorageError, ValidationError
from .groups import GroupDirectory
from .identity import SessionIdentityResolver
from .models import AccountType
from .sessions import SessionSlot
from .storage import DocumentStore
from .users import UPDATABLE_FIELDS, UserDirectory

logger = logging.getLogger("assessment.web")


class CreateGroupRequest(BaseModel):
    name: str = Field(..., max_length=200)
    members: List[str]


def create_app(
    *,
    store: Optional[DocumentStore] = None,
    settings: Optional[Settings] = None,
    session_secret: Optional[str] = None,
    initialize_store: bool = False,
) -> FastAPI:
    """Create the identity web application."""

    if settings is None:
        settings = load_settings()

    if store is None:
        store = DocumentStore(settings.database_path)
        store.initialize()
    elif initialize_store:
        store.initialize()

    if session_secret is None:
        session_secret = settings.session_secret
    if not session_secret:
        raise RuntimeError("ASSESSMENT_SESSION_SECRET must be configured to serve the web interface")

    users = UserDirectory(store)
    groups = GroupDirectory(store)

    app = FastAPI(title="Assessment Identity Service", docs_url=None, redoc_url=None)
    app.state.store = store
    app.state.users = users
    app.state.groups = groups
    app.add_middleware(
        SessionMiddleware,
        secret_key=session_secret,
        session_cookie=settings.session_cookie,
        https_only=settings.session_https_only,
        same_site="lax",
        max_age=settings.session_max_age,
    )

    def _resolver(request: Request) -> SessionIdentityResolver:
        return SessionIdentityResolver(SessionSlot(request.session), users)

    def _error(status_code: int, message: str) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"status": "error", "message": message})

    def _json_auth_error() -> JSONResponse:
        return _error(status.HTTP_401_UNAUTHORIZED, "Authentication required.")

    def _require_assessor(resolver: SessionIdentityResolver) -> Optional[JSONResponse]:
        current = resolver.current_user
        if current is None:
            return _json_auth_error()
        if not current.is_assessor:
            return _error(status.HTTP_403_FORBIDDEN, "Assessor account required.")
        return None

    @app.post("/register", status_code=status.HTTP_201_CREATED)
    async def register(
        request: Request,
        user_name: str = Form(...),
        password: str = Form(...),
        full_name: str = Form(...),
        account_type: str = Form(AccountType.STUDENT.value),
    ):
        if AccountType.coerce(account_type) is AccountType.ASSESSOR:
            denied = _require_assessor(_resolver(request))
            if denied is not None:
                return denied

        try:
            user_id = users.create_user(user_name, password, full_name, account_type)
        except DuplicateError as exc:
            return _error(status.HTTP_409_CONFLICT, str(exc))
        except ValidationError as exc:
            return _error(status.HTTP_400_BAD_REQUEST, str(exc))
        except StorageError:
            logger.exception("Registration failed for %r", user_name)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to create the user account.")
        return {"status": "ok", "user_id": str(user_id)}

    @app.post("/login")
    async def login(request: Request, user_name: str = Form(...), password: str = Form(...)):
        resolver = _resolver(request)
        if not resolver.login(user_name, password):
            return _error(status.HTTP_401_UNAUTHORIZED, "Invalid user name or password.")
        return {"status": "ok", "user": resolver.current_user.to_dict()}

    @app.post("/logout")
    async def logout(request: Request):
        return {"status": "ok", "success": _resolver(request).logout()}

    @app.get("/me")
    async def me(request: Request):
        current = _resolver(request).current_user
        if current is None:
            return _json_auth_error()
        return {"status": "ok", "user": current.to_dict()}

    @app.post("/me/password")
    async def change_password(request: Request, new_password: str = Form(...)):
        resolver = _resolver(request)
        if not resolver.is_authenticated:
            return _json_auth_error()
        if not resolver.change_password(new_password):
            return _error(status.HTTP_400_BAD_REQUEST, "Password could not be changed.")
        return {"status": "ok", "success": True}

    @app.post("/me/{field}")
    async def update_me(request: Request, field: str, value: str = Form(...)):
        resolver = _resolver(request)
        if not resolver.is_authenticated:
            return _json_auth_error()
        if resolver.update_user(field, value):
            return {"status": "ok", "user": resolver.current_user.to_dict()}
        if field not in UPDATABLE_FIELDS:
            return _error(status.HTTP_403_FORBIDDEN, f"Field '{field}' may not be updated.")
        return _error(status.HTTP_400_BAD_REQUEST, "Update failed.")

    @app.get("/students")
    async def list_students(request: Request):
        denied = _require_assessor(_resolver(request))
        if denied is not None:
            return denied
        students = users.list_students()
        return {
            "status": "ok",
            "students": {user_id: summary.to_dict() for user_id, summary in students.items()},
        }

    @app.get("/groups")
    async def list_groups(request: Request):
        denied = _require_assessor(_resolver(request))
        if denied is not None:
            return denied
        return {"status": "ok", "groups": [group.to_dict() for group in groups.list_groups()]}

    @app.post("/groups", status_code=status.HTTP_201_CREATED)
    async def create_group(request: Request, payload: CreateGroupRequest):
        denied = _require_assessor(_resolver(request))
        if denied is not None:
            return denied
        try:
            group_id = groups.add_group(payload.name, payload.members)
        except (ValidationError, NotFoundError) as exc:
            return _error(status.HTTP_400_BAD_REQUEST, str(exc))
        except StorageError:
            logger.exception("Group creation failed for %r", payload.name)
            return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unable to create the group.")
        return {"status": "ok", "group_id": str(group_id)}

    @app.get("/groups/{group_id}/members")
    async def group_members(request: Request, group_id: str):
        denied = _require_assessor(_resolver(request))
        if denied is not None:
            return denied
        members = groups.group_members(group_id)
        if members is None:
            return _error(status.HTTP_404_NOT_FOUND, "Group not found.")
        return {"status": "ok", "members": members}

    @app.delete("/groups/{group_id}")
    async def delete_group(request: Request, group_id: str):
        denied = _require_assessor(_resolver(request))
        if denied is not None:
            return denied
        if not groups.delete_group(group_id):
            return _error(status.HTTP_404_NOT_FOUND, "Group not found.")
        return {"status": "ok", "success": True}

    return app


__all__ = ["CreateGroupRequest", "create_app"]
