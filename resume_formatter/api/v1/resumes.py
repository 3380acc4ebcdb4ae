import logging
from typing import NoReturn
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import HTMLResponse, Response
from openai import OpenAIError

from resume_formatter.ai.factory import get_tool_invoker
from resume_formatter.core.config import settings
from resume_formatter.core.errors import (
    ConfigurationError,
    ExportError,
    ExtractionError,
    ProviderError,
    FormatterError,
    RotationExhaustedError,
    UnsupportedInputError,
)
from resume_formatter.core.rate_limit import rate_limit
from resume_formatter.core.session_store import SessionStore, StoredSession, get_session_store
from resume_formatter.parsing.parse import build_payload
from resume_formatter.render.docx_export import DOCX_MIME, render_docx
from resume_formatter.render.pdf_export import PDF_MIME, render_pdf
from resume_formatter.render.preview import render_preview_html
from resume_formatter.render.profiles import export_filename
from resume_formatter.schemas.api import (
    AcceptRequest,
    DeleteResponse,
    ExportKind,
    GrammarResponse,
    ReviewActionResponse,
    SessionResponse,
)
from resume_formatter.schemas.resume import ResumeFormat
from resume_formatter.services.extraction import ExtractionClient
from resume_formatter.services.grammar import GrammarClient

logger = logging.getLogger(__name__)

router = APIRouter()

_ERROR_STATUS = {
    ConfigurationError: status.HTTP_503_SERVICE_UNAVAILABLE,
    UnsupportedInputError: status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
    ExtractionError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    RotationExhaustedError: status.HTTP_429_TOO_MANY_REQUESTS,
    ExportError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ProviderError: status.HTTP_502_BAD_GATEWAY,
}

_UPLOAD_CHUNK = 1024 * 64


def get_extraction_client() -> ExtractionClient:
    return ExtractionClient(get_tool_invoker())


def get_grammar_client() -> GrammarClient:
    return GrammarClient(get_tool_invoker())


def _as_formatter_error(exc: Exception) -> FormatterError:
    if isinstance(exc, FormatterError):
        return exc
    error = ProviderError(f"The AI provider request failed ({type(exc).__name__}). Please try again.")
    error.__cause__ = exc
    return error


def _raise_formatter_http_error(exc: FormatterError) -> NoReturn:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            raise HTTPException(status_code=status_code, detail={"code": exc.code, "message": str(exc)}) from exc
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail={"code": exc.code, "message": str(exc)}
    ) from exc


def _require_session(store: SessionStore, session_id: str) -> StoredSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found or expired.")
    return session


def _session_response(session: StoredSession) -> SessionResponse:
    review = session.review
    return SessionResponse(
        session_id=session.session_id,
        format=session.format,
        filename=session.filename,
        record=review.record,
        issues=review.issues,
        change_log=review.change_log,
    )


def _action_response(session: StoredSession, changed: bool) -> ReviewActionResponse:
    review = session.review
    return ReviewActionResponse(
        session_id=session.session_id,
        changed=changed,
        record=review.record,
        issues=review.issues,
        change_log=review.change_log,
    )


async def _read_upload(file: UploadFile) -> bytes:
    limit = settings.max_upload_bytes
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await file.read(_UPLOAD_CHUNK)
        if not chunk:
            break
        total += len(chunk)
        if total > limit:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File too large. Maximum allowed size is {settings.max_upload_mb} MB.",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/resumes", response_model=SessionResponse)
@rate_limit()
async def create_resume(
    request: Request,
    file: UploadFile = File(...),
    format: ResumeFormat = Form(ResumeFormat.CLASSIC_PROFESSIONAL),
    client: ExtractionClient = Depends(get_extraction_client),
    store: SessionStore = Depends(get_session_store),
):
    _ = request
    filename = file.filename or "uploaded-file"
    content = await _read_upload(file)
    try:
        payload = build_payload(filename, content, file.content_type)
        record = await client.extract(payload, format)
    except (FormatterError, OpenAIError) as exc:
        error = _as_formatter_error(exc)
        logger.warning("resume_extraction_failed file=%s code=%s: %s", filename, error.code, exc)
        _raise_formatter_http_error(error)

    session = store.create(record, format, filename=filename)
    return _session_response(session)


@router.get("/resumes/{session_id}", response_model=SessionResponse)
async def get_resume(session_id: str, store: SessionStore = Depends(get_session_store)):
    session = _require_session(store, session_id)
    with session.lock:
        return _session_response(session)


@router.delete("/resumes/{session_id}", response_model=DeleteResponse)
async def delete_resume(session_id: str, store: SessionStore = Depends(get_session_store)):
    if not store.delete(session_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found or expired.")
    return DeleteResponse(session_id=session_id, deleted=True)


@router.post("/resumes/{session_id}/grammar", response_model=GrammarResponse)
@rate_limit()
async def analyze_resume_grammar(
    request: Request,
    session_id: str,
    client: GrammarClient = Depends(get_grammar_client),
    store: SessionStore = Depends(get_session_store),
):
    _ = request
    session = _require_session(store, session_id)
    with session.lock:
        record = session.review.record

    try:
        issues = await client.analyze(record, session.format)
    except (FormatterError, OpenAIError) as exc:
        error = _as_formatter_error(exc)
        logger.warning("grammar_analysis_failed session=%s code=%s: %s", session_id, error.code, exc)
        _raise_formatter_http_error(error)

    with session.lock:
        session.review.set_issues(issues)
    return GrammarResponse(session_id=session_id, issue_count=len(issues), issues=issues)


@router.post(
    "/resumes/{session_id}/issues/{issue_id}/accept",
    response_model=ReviewActionResponse,
)
async def accept_issue(
    session_id: str,
    issue_id: str,
    payload: AcceptRequest | None = None,
    store: SessionStore = Depends(get_session_store),
):
    session = _require_session(store, session_id)
    suggestion = payload.suggestion if payload else None
    with session.lock:
        try:
            changed = session.review.accept(issue_id, suggestion)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found.") from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
        return _action_response(session, changed)


@router.post(
    "/resumes/{session_id}/issues/{issue_id}/ignore",
    response_model=ReviewActionResponse,
)
async def ignore_issue(session_id: str, issue_id: str, store: SessionStore = Depends(get_session_store)):
    session = _require_session(store, session_id)
    with session.lock:
        try:
            session.review.ignore(issue_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Issue not found.") from exc
        return _action_response(session, False)


@router.post(
    "/resumes/{session_id}/changes/{entry_id}/undo",
    response_model=ReviewActionResponse,
)
async def undo_change(session_id: str, entry_id: str, store: SessionStore = Depends(get_session_store)):
    session = _require_session(store, session_id)
    with session.lock:
        try:
            changed = session.review.undo(entry_id)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Change log entry not found.") from exc
        except ValueError as exc:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
        return _action_response(session, changed)


@router.get("/resumes/{session_id}/preview", response_class=HTMLResponse)
async def preview_resume(
    session_id: str,
    format: ResumeFormat | None = None,
    store: SessionStore = Depends(get_session_store),
):
    session = _require_session(store, session_id)
    with session.lock:
        record = session.review.record
        issues = session.review.issues
    return HTMLResponse(render_preview_html(record, format or session.format, issues))


@router.get("/resumes/{session_id}/export/{kind}")
async def export_resume(
    session_id: str,
    kind: ExportKind,
    format: ResumeFormat | None = None,
    store: SessionStore = Depends(get_session_store),
):
    session = _require_session(store, session_id)
    with session.lock:
        record = session.review.record
    fmt = format or session.format

    try:
        if kind is ExportKind.DOCX:
            content, media_type = render_docx(record, fmt), DOCX_MIME
        else:
            content, media_type = render_pdf(record, fmt), PDF_MIME
    except ExportError as exc:
        _raise_formatter_http_error(exc)

    filename = export_filename(record.full_name, fmt, kind.value)
    ascii_name = filename.encode("ascii", "ignore").decode("ascii").replace('"', "") or f"Resume.{kind.value}"
    disposition = f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
    return Response(content=content, media_type=media_type, headers={"Content-Disposition": disposition})
