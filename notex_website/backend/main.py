import contextlib
import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse
from fastapi.staticfiles import StaticFiles

from .config import Settings, configure_logging, get_settings
from .domain import AuthError, NoteNotFound
from .formatting import render_markup
from .models import (
    LoginResponse,
    MessageResponse,
    NoteData,
    NoteResponse,
    NotesListResponse,
    NoteUpdate,
    UserCreds,
    UserResponse,
)
from .services import AuthService, Notebook, Storage
from .utils import time_now

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
notes_router = APIRouter(prefix="/api/notes", tags=["notes"])

# -------------------------------
# Dependencies
# -------------------------------

def get_auth(request: Request) -> AuthService:
    return request.app.state.auth

def get_notebook(request: Request) -> Notebook:
    return request.app.state.notebook

def get_current_user(authorization: Optional[str] = Header(None),
                     auth: AuthService = Depends(get_auth)) -> str:
    """Resolve the Authorization header to a user ID or fail with 401."""
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header is required")
    try:
        return auth.validate(authorization)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))

# -------------------------------
# Auth routes
# -------------------------------

@auth_router.post("/register", response_model=UserResponse, status_code=201)
def register(creds: UserCreds, auth: AuthService = Depends(get_auth)):
    try:
        uid = auth.add_user(creds.email, creds.password)
        return UserResponse(success=True, user_id=uid)
    except AuthError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Registration error")
        raise HTTPException(status_code=500, detail="Internal server error")

@auth_router.post("/login", response_model=LoginResponse)
def login(creds: UserCreds, auth: AuthService = Depends(get_auth)):
    try:
        token = auth.login(creds.email, creds.password)
        return LoginResponse(success=True, token=token)
    except AuthError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except Exception:
        logger.exception("Login error")
        raise HTTPException(status_code=500, detail="Internal server error")

@auth_router.post("/logout", response_model=MessageResponse)
def logout(authorization: str = Header(...), auth: AuthService = Depends(get_auth)):
    if auth.logout(authorization):
        return MessageResponse(success=True, message="Logged out successfully")
    return MessageResponse(success=False, message="Already logged out")

# -------------------------------
# Note routes
# -------------------------------

@notes_router.get("", response_model=NotesListResponse)
def list_notes(q: Optional[str] = None,
               user_id: str = Depends(get_current_user),
               notebook: Notebook = Depends(get_notebook)):
    """List the user's notes, newest first, optionally filtered by ``q``."""
    try:
        notes = [n.to_dict() for n in notebook.list_notes(user_id, q)]
        return NotesListResponse(success=True, notes=notes, count=len(notes))
    except Exception:
        logger.exception("Error fetching notes")
        raise HTTPException(status_code=500, detail="Internal server error")

@notes_router.get("/{note_id}", response_model=NoteResponse)
def get_note(note_id: str,
             user_id: str = Depends(get_current_user),
             notebook: Notebook = Depends(get_notebook)):
    try:
        note = notebook.get_note(user_id, note_id)
        return NoteResponse(success=True, note=note.to_dict(), message="Note retrieved successfully")
    except NoteNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Error fetching note %s", note_id)
        raise HTTPException(status_code=500, detail="Internal server error")

@notes_router.get("/{note_id}/html", response_class=HTMLResponse)
def render_note(note_id: str,
                user_id: str = Depends(get_current_user),
                notebook: Notebook = Depends(get_notebook)):
    """Note content as display HTML; only <strong> and <mark> survive as elements."""
    try:
        note = notebook.get_note(user_id, note_id)
    except NoteNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Error rendering note %s", note_id)
        raise HTTPException(status_code=500, detail="Internal server error")
    return HTMLResponse(render_markup(note.content))

@notes_router.post("", response_model=NoteResponse, status_code=201)
def create_note(data: NoteData,
                user_id: str = Depends(get_current_user),
                notebook: Notebook = Depends(get_notebook)):
    try:
        note = notebook.create_note(user_id, data.title, data.content, data.attachments)
        return NoteResponse(success=True, note=note.to_dict(), message="Note created successfully")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("Error creating note")
        raise HTTPException(status_code=500, detail="Internal server error")

@notes_router.put("/{note_id}", response_model=NoteResponse)
def update_note(note_id: str, data: NoteUpdate,
                user_id: str = Depends(get_current_user),
                notebook: Notebook = Depends(get_notebook)):
    try:
        note = notebook.update_note(user_id, note_id, data.title, data.content, data.attachments)
        return NoteResponse(success=True, note=note.to_dict(), message="Note updated successfully")
    except NoteNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception:
        logger.exception("Error updating note %s", note_id)
        raise HTTPException(status_code=500, detail="Internal server error")

@notes_router.delete("/{note_id}", response_model=MessageResponse)
def delete_note(note_id: str,
                user_id: str = Depends(get_current_user),
                notebook: Notebook = Depends(get_notebook)):
    try:
        deleted = notebook.delete_note(user_id, note_id)
    except Exception:
        logger.exception("Error deleting note %s", note_id)
        raise HTTPException(status_code=500, detail="Internal server error")
    if not deleted:
        raise HTTPException(status_code=404, detail="Note not found")
    return MessageResponse(success=True, message="Note deleted successfully")

# -------------------------------
# App factory
# -------------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the NoteX API with its own auth service and note store."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("NoteX API starting up (users_db=%s, notes_db=%s)",
                    settings.users_db, settings.notes_db)
        yield
        logger.info("NoteX API shutting down")

    app = FastAPI(
        title="NoteX API",
        description="Personal notes with inline bold and highlight formatting",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.auth = AuthService(settings.users_db)
    app.state.notebook = Notebook(Storage(settings.notes_db))

    app.include_router(auth_router)
    app.include_router(notes_router)

    website_dir = settings.website_dir
    if website_dir and os.path.isdir(website_dir):
        app.mount("/static", StaticFiles(directory=website_dir), name="static")

    @app.get("/")
    async def read_root():
        index_path = os.path.join(website_dir, "index.html") if website_dir else None
        if index_path and os.path.exists(index_path):
            return FileResponse(index_path)
        return {"message": "NoteX API is running"}

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "timestamp": time_now()}

    return app

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)
