import json
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from localbot.exceptions import RagError, error_kind
from localbot.logging_config import get_logger
from vector_store.models import SearchHit

from .config import PipelineConfig
from .models import (
    ChatRequest,
    DocumentRecord,
    DocumentUploadRequest,
    FileUploadRequest,
    QueryAnswer,
    SearchRequest,
)
from .service import RagService

logger = get_logger(__name__)

STATUS_BY_KIND = {
    "invalid_input": 400,
    "extraction_failed": 400,
    "document_not_found": 404,
    "model_unavailable": 503,
    "index_uninitialized": 503,
}


def status_for(error: Exception) -> int:
    return STATUS_BY_KIND.get(error_kind(error), 500)


def _event(kind: str, **payload) -> str:
    return json.dumps({"type": kind, **payload}, ensure_ascii=False) + "\n"


def create_app(
    config: Optional[PipelineConfig] = None,
    service: Optional[RagService] = None,
) -> FastAPI:
    service = service or RagService(config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await service.start()
        try:
            yield
        finally:
            await service.close()

    app = FastAPI(
        title="LocalBOT",
        version="1.0.0",
        description="Local retrieval-augmented question answering over your documents.",
        lifespan=lifespan,
    )
    app.state.service = service

    @app.exception_handler(RagError)
    async def rag_error_handler(request: Request, exc: RagError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content={"detail": str(exc), "kind": error_kind(exc)},
        )

    @app.get("/health")
    def health() -> dict:
        return service.health()

    @app.get("/documents", response_model=list[DocumentRecord])
    def list_documents() -> list[DocumentRecord]:
        return service.list_documents()

    @app.get("/documents/{document_id}", response_model=DocumentRecord)
    def get_document(document_id: str) -> DocumentRecord:
        return service.get_document(document_id)

    @app.post("/documents", response_model=DocumentRecord, status_code=202)
    async def upload_document(request: DocumentUploadRequest) -> DocumentRecord:
        return service.submit_document(request.name, request.text, request.document_id)

    @app.post("/documents/file", response_model=DocumentRecord, status_code=202)
    async def upload_file(request: FileUploadRequest) -> DocumentRecord:
        return service.submit_file(request.path, request.name)

    @app.delete("/documents/{document_id}")
    async def delete_document(document_id: str) -> dict:
        removed = await service.delete_document_index(document_id)
        return {"document_id": document_id, "removed_chunks": removed}

    @app.post("/chat", response_model=QueryAnswer)
    async def chat(request: ChatRequest) -> QueryAnswer:
        return await service.answer_question(request.question, session_id=request.session_id)

    @app.post("/chat/stream")
    async def chat_stream(request: ChatRequest) -> StreamingResponse:
        """
        Stream the answer as NDJSON: one {"type": "token"} event per
        fragment, then a final {"type": "sources"} event with the ranked
        sources.
        """
        sources, fragments = await service.answer_stream(request.question)
        # Pull the first fragment here so that failures before generation
        # starts still get a proper status code
        try:
            first = await anext(fragments)
        except StopAsyncIteration:
            first = None

        async def body() -> AsyncIterator[str]:
            try:
                if first is not None:
                    yield _event("token", text=first)
                async for fragment in fragments:
                    yield _event("token", text=fragment)
                yield _event("sources", sources=[s.model_dump(mode="json") for s in sources])
            finally:
                await fragments.aclose()

        return StreamingResponse(body(), media_type="application/x-ndjson")

    @app.post("/search", response_model=list[SearchHit])
    async def search(request: SearchRequest) -> list[SearchHit]:
        return await service.search(request.query, request.limit)

    return app
