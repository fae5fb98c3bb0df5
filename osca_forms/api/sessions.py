"""Form session API, one endpoint per user interaction on an open form."""

import logging
from typing import Optional, Union

from fastapi import APIRouter, File, HTTPException, Request, Response, UploadFile
from pydantic import BaseModel

from osca_forms.config import settings
from osca_forms.models.workflow import Workflow
from osca_forms.services.backend_client import BackendClient
from osca_forms.services.form_session import FormSession, SessionNotReady
from osca_forms.services.form_state import AttachedFile
from osca_forms.services.session_registry import FormSessionRegistry

router = APIRouter(prefix="/sessions")
logger = logging.getLogger("osca_forms.sessions")


class StartSessionRequest(BaseModel):
    workflow: Workflow
    record_id: Optional[str] = None


class SetValueRequest(BaseModel):
    value: Optional[Union[str, int, float]] = None


class ToggleOptionRequest(BaseModel):
    option: str
    checked: bool


class ProposeRequest(BaseModel):
    agreement: bool = False


def _get_session(session_id: str) -> FormSession:
    session = FormSessionRegistry.get_instance().get(session_id)
    if not session:
        raise HTTPException(status_code=404, detail=f"No open form session {session_id}")
    return session


def _forwarded_cookies(request: Request) -> dict[str, str]:
    cookie = request.cookies.get(settings.session_cookie_name)
    return {settings.session_cookie_name: cookie} if cookie else {}


def _mutate(session: FormSession, action, *args):
    """Run a session mutation, mapping engine errors onto HTTP errors."""
    try:
        return action(*args)
    except SessionNotReady as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("")
async def start_session(body: StartSessionRequest, request: Request):
    client = BackendClient(cookies=_forwarded_cookies(request))
    try:
        session = FormSession(body.workflow, record_id=body.record_id, client=client)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    await FormSessionRegistry.get_instance().register(session)
    logger.info(f"Opened form session {session.session_id} for {body.workflow.value}")
    await session.start()
    return session.render()


@router.get("/{session_id}")
async def get_session(session_id: str):
    return _get_session(session_id).render()


@router.post("/{session_id}/fields/{field_name}")
async def set_field_value(session_id: str, field_name: str, body: SetValueRequest):
    session = _get_session(session_id)
    _mutate(session, session.set_value, field_name, body.value)
    return session.render()


@router.post("/{session_id}/fields/{field_name}/options")
async def toggle_field_option(session_id: str, field_name: str, body: ToggleOptionRequest):
    session = _get_session(session_id)
    _mutate(session, session.toggle_option, field_name, body.option, body.checked)
    return session.render()


@router.post("/{session_id}/groups/{group_key}/toggle")
async def toggle_group(session_id: str, group_key: str):
    session = _get_session(session_id)
    _mutate(session, session.toggle_group, group_key)
    return session.render()


@router.post("/{session_id}/files/{field_name}")
async def upload_file(session_id: str, field_name: str, file: UploadFile = File(...)):
    session = _get_session(session_id)
    content = await file.read()
    if len(content) > settings.max_upload_mb * 1024 * 1024:
        raise HTTPException(status_code=413, detail=f"File exceeds {settings.max_upload_mb} MB")
    attached = AttachedFile(
        filename=file.filename or field_name,
        content_type=file.content_type or "application/octet-stream",
        content=content,
    )
    _mutate(session, session.attach_file, field_name, attached)
    return session.render()


@router.get("/{session_id}/previews/{token}")
async def get_preview(session_id: str, token: str):
    session = _get_session(session_id)
    preview = session.previews.get(token)
    if not preview:
        raise HTTPException(status_code=404, detail="Preview not found or revoked")
    return Response(content=preview.content, media_type=preview.content_type)


@router.post("/{session_id}/propose")
async def propose(session_id: str, body: ProposeRequest):
    session = _get_session(session_id)
    _mutate(session, session.propose, body.agreement)
    return session.render()


@router.post("/{session_id}/cancel-confirm")
async def cancel_confirm(session_id: str):
    session = _get_session(session_id)
    session.cancel_confirm()
    return session.render()


@router.post("/{session_id}/commit")
async def commit(session_id: str):
    session = _get_session(session_id)
    try:
        result = await session.commit()
    except SessionNotReady as e:
        raise HTTPException(status_code=409, detail=str(e))
    if result.status == "ignored":
        raise HTTPException(status_code=409, detail="No confirmed submission pending")
    return session.render()


@router.delete("/{session_id}")
async def close_session(session_id: str):
    closed = await FormSessionRegistry.get_instance().close_session(session_id)
    if not closed:
        raise HTTPException(status_code=404, detail=f"No open form session {session_id}")
    return {"status": "closed", "session_id": session_id}
