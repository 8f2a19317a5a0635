from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload

from .audit_logger import log_admin_action
from .auth import get_current_user, require_admin
from .config import Config
from .database import get_db, unit_of_work
from .errors import ConflictError, NotFoundError, success_body
from .models import Playlist, Problem, ProblemInPlaylist, User
from .schemas import (PlaylistCreate, PlaylistEntryResponse, PlaylistProblemAdd, PlaylistResponse,
                      PlaylistUpdate, ProblemSummary, UserSummary)

playlist_router = APIRouter(prefix=f"{Config.API_PREFIX}/playlist", tags=["playlists"])


def serialize_playlist(playlist: Playlist) -> dict:
    response = PlaylistResponse(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        user_id=playlist.user_id,
        user=UserSummary.model_validate(playlist.user) if playlist.user else None,
        problems=[ProblemSummary.model_validate(entry.problem) for entry in playlist.entries],
        created_at=playlist.created_at,
        updated_at=playlist.updated_at,
    )
    return response.model_dump(by_alias=True, mode="json")


def _playlist_query(db: Session):
    return db.query(Playlist).options(
        joinedload(Playlist.user),
        selectinload(Playlist.entries).joinedload(ProblemInPlaylist.problem),
    )


def _get_playlist_or_404(db: Session, playlist_id: str) -> Playlist:
    playlist = _playlist_query(db).filter(Playlist.id == playlist_id).first()
    if not playlist:
        raise NotFoundError("Playlist not found")
    return playlist


def _ensure_name_available(db: Session, user_id: str, name: str) -> None:
    existing = db.query(Playlist).filter(Playlist.user_id == user_id, Playlist.name == name).first()
    if existing:
        raise ConflictError("A playlist with this name already exists")


@playlist_router.post("/playlists", status_code=status.HTTP_201_CREATED)
def create_playlist(
    playlist_data: PlaylistCreate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    _ensure_name_available(db, current_user.id, playlist_data.name)

    playlist = Playlist(name=playlist_data.name, description=playlist_data.description, user_id=current_user.id)
    try:
        with unit_of_work(db):
            db.add(playlist)
    except IntegrityError:
        raise ConflictError("A playlist with this name already exists")

    log_admin_action(current_user.id, "create_playlist", request, {"playlist_id": playlist.id})
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_body(201, "Playlist created successfully",
                             serialize_playlist(_get_playlist_or_404(db, playlist.id))),
    )


@playlist_router.get("/playlists")
def get_playlists(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    playlists = _playlist_query(db).order_by(Playlist.created_at.desc()).all()
    return success_body(200, "Playlists retrieved successfully", [serialize_playlist(p) for p in playlists])


@playlist_router.get("/playlists/{playlist_id}")
def get_playlist(
    playlist_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return success_body(200, "Playlist retrieved successfully",
                        serialize_playlist(_get_playlist_or_404(db, playlist_id)))


@playlist_router.put("/playlists/{playlist_id}")
def update_playlist(
    playlist_id: str,
    playlist_data: PlaylistUpdate,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    playlist = _get_playlist_or_404(db, playlist_id)

    changes = playlist_data.model_dump(exclude_unset=True)
    new_name = (changes.get("name") or "").strip()
    if new_name and new_name != playlist.name:
        _ensure_name_available(db, playlist.user_id, new_name)
        changes["name"] = new_name
    elif "name" in changes:
        changes.pop("name")

    try:
        with unit_of_work(db):
            for field, value in changes.items():
                setattr(playlist, field, value)
    except IntegrityError:
        raise ConflictError("A playlist with this name already exists")

    log_admin_action(current_user.id, "update_playlist", request,
                     {"playlist_id": playlist_id, "fields": sorted(changes)})
    return success_body(200, "Playlist updated successfully",
                        serialize_playlist(_get_playlist_or_404(db, playlist_id)))


@playlist_router.delete("/playlists/{playlist_id}")
def delete_playlist(
    playlist_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    playlist = _get_playlist_or_404(db, playlist_id)
    deleted = serialize_playlist(playlist)

    with unit_of_work(db):
        db.delete(playlist)

    log_admin_action(current_user.id, "delete_playlist", request, {"playlist_id": playlist_id})
    return success_body(200, "Playlist deleted successfully", deleted)


@playlist_router.get("/playlists/{playlist_id}/problems")
def get_problems_in_playlist(
    playlist_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    _get_playlist_or_404(db, playlist_id)
    entries = db.query(ProblemInPlaylist).options(joinedload(ProblemInPlaylist.problem)).filter(
        ProblemInPlaylist.playlist_id == playlist_id
    ).order_by(ProblemInPlaylist.created_at).all()
    return success_body(200, "Problems in playlist retrieved successfully",
                        [PlaylistEntryResponse.model_validate(e).model_dump(by_alias=True, mode="json")
                         for e in entries])


@playlist_router.post("/playlists/{playlist_id}/problems", status_code=status.HTTP_201_CREATED)
def add_problem_to_playlist(
    playlist_id: str,
    entry_data: PlaylistProblemAdd,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    _get_playlist_or_404(db, playlist_id)
    if not db.get(Problem, entry_data.problem_id):
        raise NotFoundError("Problem not found")

    existing = db.query(ProblemInPlaylist).filter(
        ProblemInPlaylist.playlist_id == playlist_id,
        ProblemInPlaylist.problem_id == entry_data.problem_id
    ).first()
    if existing:
        raise ConflictError("This problem is already in the playlist")

    entry = ProblemInPlaylist(playlist_id=playlist_id, problem_id=entry_data.problem_id)
    try:
        with unit_of_work(db):
            db.add(entry)
    except IntegrityError:
        raise ConflictError("This problem is already in the playlist")
    db.refresh(entry)

    log_admin_action(current_user.id, "add_problem_to_playlist", request,
                     {"playlist_id": playlist_id, "problem_id": entry_data.problem_id})
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=success_body(201, "Problem added to playlist successfully",
                             PlaylistEntryResponse.model_validate(entry).model_dump(by_alias=True, mode="json")),
    )


@playlist_router.delete("/playlists/{playlist_id}/problems/{problem_id}")
def remove_problem_from_playlist(
    playlist_id: str,
    problem_id: str,
    request: Request,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    entry = db.query(ProblemInPlaylist).filter(
        ProblemInPlaylist.playlist_id == playlist_id,
        ProblemInPlaylist.problem_id == problem_id
    ).first()
    if not entry:
        raise NotFoundError("Problem is not in this playlist")

    removed = PlaylistEntryResponse.model_validate(entry).model_dump(by_alias=True, mode="json")
    with unit_of_work(db):
        db.delete(entry)

    log_admin_action(current_user.id, "remove_problem_from_playlist", request,
                     {"playlist_id": playlist_id, "problem_id": problem_id})
    return success_body(200, "Problem removed from playlist successfully", removed)


@playlist_router.get("/users/{user_id}/playlists")
def get_playlists_by_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    playlists = _playlist_query(db).filter(Playlist.user_id == user_id).order_by(Playlist.created_at.desc()).all()
    return success_body(200, "User's playlists retrieved successfully", [serialize_playlist(p) for p in playlists])


@playlist_router.get("/problems/{problem_id}/playlists")
def get_playlists_by_problem(
    problem_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    playlists = _playlist_query(db).join(ProblemInPlaylist, ProblemInPlaylist.playlist_id == Playlist.id).filter(
        ProblemInPlaylist.problem_id == problem_id
    ).order_by(Playlist.created_at.desc()).all()
    return success_body(200, "Playlists containing the problem retrieved successfully",
                        [serialize_playlist(p) for p in playlists])
