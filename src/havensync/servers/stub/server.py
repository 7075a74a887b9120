"""
Stub HavenMind API for local development.

Serves the built-in mock dataset over the real wire contract, so UI work and
end-to-end tests can run the live code path without the production backend:
- Dashboard resources (usage, projects, activity)
- Chat sessions and generation
- Home Journal documents (upload, list, view link)
- Account profile and password endpoints
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, File, Request, Response, UploadFile
from fastapi.responses import JSONResponse, PlainTextResponse

from ...core import mock_data
from ...core.models import ChatSession, UserDocument

logger = logging.getLogger(__name__)

SESSION_COOKIE = "havenmind_session"

# Each list request moves freshly uploaded documents one step along the pipeline
_NEXT_STATUS = {"UPLOADED": "PROCESSING", "PROCESSING": "COMPLETE"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class StubBackend:
    """In-memory HavenMind API."""

    def __init__(
        self,
        *,
        require_session: Optional[str] = None,
        password: str = "hunter22",
        view_url_base: str = "https://files.havenmind.invalid",
    ):
        self.require_session = require_session
        self.password = password
        self.view_url_base = view_url_base.rstrip("/")
        self.sessions: List[ChatSession] = []
        self.documents: List[UserDocument] = list(mock_data.DOCUMENTS)
        self.profile: Dict[str, Any] = {"name": None}
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Create and configure FastAPI application."""
        app = FastAPI(
            title="HavenMind Stub API",
            version="0.1.0",
            description="Development stand-in for the HavenMind API"
        )

        @app.middleware("http")
        async def check_session(request: Request, call_next):
            if self.require_session and request.cookies.get(SESSION_COOKIE) != self.require_session:
                return PlainTextResponse("Not signed in", status_code=401)
            return await call_next(request)

        self._register_routes(app)
        return app

    def _advance_documents(self) -> None:
        self.documents = [
            doc.model_copy(update={"status": _NEXT_STATUS[doc.status]}) if doc.status in _NEXT_STATUS else doc
            for doc in self.documents
        ]

    def _register_routes(self, app: FastAPI) -> None:
        """Register API routes."""

        @app.get("/analytics/usage")
        async def usage():
            return [m.to_wire() for m in mock_data.USAGE]

        @app.get("/projects")
        async def projects():
            return [p.to_wire() for p in mock_data.PROJECTS]

        @app.get("/activity")
        async def activity():
            return [a.to_wire() for a in mock_data.ACTIVITY]

        @app.get("/users/me/sessions")
        async def sessions():
            return {"sessions": [s.to_wire() for s in self.sessions]}

        @app.post("/ai/generate")
        async def generate(request: Request):
            body = await request.json()
            prompt = (body or {}).get("prompt")
            if not prompt:
                return PlainTextResponse("Prompt is required", status_code=400)
            session = ChatSession(
                id=str(uuid.uuid4()),
                prompt=prompt,
                response=mock_data.MOCK_ASSISTANT_REPLY,
                model="havenmind-stub",
                created_at=_now_iso(),
            )
            self.sessions.append(session)
            data = session.to_wire()
            data["text"] = session.response
            return {"data": data}

        @app.get("/documents")
        async def list_documents():
            documents = [d.to_wire() for d in self.documents]
            self._advance_documents()
            return documents

        @app.post("/documents")
        async def upload_document(file: UploadFile = File(...)):
            content = await file.read()
            document = UserDocument(
                id=str(uuid.uuid4()),
                original_name=file.filename or "document",
                size=len(content),
                mime_type=file.content_type or "application/octet-stream",
                created_at=datetime.now(timezone.utc),
                status="UPLOADED",
            )
            self.documents.insert(0, document)
            logger.info("Stored %s (%d bytes) as %s", document.original_name, document.size, document.id)
            return document.to_wire()

        @app.get("/documents/{document_id}/view")
        async def view_document(document_id: str):
            document = next((d for d in self.documents if d.id == document_id), None)
            if document is None:
                return PlainTextResponse("Document not found", status_code=404)
            if document.status != "COMPLETE":
                return {}
            return {"url": f"{self.view_url_base}/{document_id}"}

        @app.patch("/users/me")
        async def update_profile(request: Request):
            body = await request.json()
            if "name" in (body or {}):
                self.profile["name"] = body["name"]
            return Response(status_code=204)

        @app.post("/users/me/change-password")
        async def change_password(request: Request):
            body = await request.json() or {}
            if body.get("currentPassword") != self.password:
                return PlainTextResponse("Current password is incorrect", status_code=400)
            if len(body.get("newPassword") or "") < 8:
                return PlainTextResponse("Password must be at least 8 characters", status_code=400)
            self.password = body["newPassword"]
            return Response(status_code=204)

        @app.get("/health")
        async def health():
            return JSONResponse({"status": "healthy", "service": "havenmind-stub"})


async def main():
    """Main entry point for the stub server."""
    import argparse

    parser = argparse.ArgumentParser(description="HavenMind stub API server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8820, help="Port to bind to")
    parser.add_argument("--session", help="Require this havenmind_session cookie value")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    backend = StubBackend(require_session=args.session)
    logger.info(f"Starting HavenMind stub API on {args.host}:{args.port}")
    config = uvicorn.Config(app=backend.app, host=args.host, port=args.port, log_level="info")
    server = uvicorn.Server(config)
    try:
        await server.serve()
    except KeyboardInterrupt:
        logger.info("Server stopped by user")


if __name__ == "__main__":
    asyncio.run(main())
