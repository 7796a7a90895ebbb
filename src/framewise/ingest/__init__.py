"""Framewise ingest pipeline — parse, embed, load."""

from framewise.ingest.checkpoint import CheckpointError, read_checkpoint, write_checkpoint
from framewise.ingest.embedder import EmbeddingError, EmbeddingStage, build_embedding_text
from framewise.ingest.loader import LoadPlan, LoadReport, WorkflowLoader
from framewise.ingest.parser import ParseReport, WorkflowParser, parse_directory
from framewise.ingest.sources import SourceDocument, discover_documents, read_document

__all__ = [
    "CheckpointError",
    "read_checkpoint",
    "write_checkpoint",
    "EmbeddingError",
    "EmbeddingStage",
    "build_embedding_text",
    "LoadPlan",
    "LoadReport",
    "WorkflowLoader",
    "ParseReport",
    "WorkflowParser",
    "parse_directory",
    "SourceDocument",
    "discover_documents",
    "read_document",
]
