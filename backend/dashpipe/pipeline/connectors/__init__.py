"""Concrete connectors, one per (direction, medium) pair."""

from dashpipe.pipeline.connectors.database import DatabaseReadConnector, DatabaseWriteConnector
from dashpipe.pipeline.connectors.file import FileReadConnector, FileWriteConnector
from dashpipe.pipeline.connectors.http import HttpReadConnector, HttpWriteConnector
from dashpipe.pipeline.connectors.process import ProcessRunConnector

__all__ = [
    "DatabaseReadConnector",
    "DatabaseWriteConnector",
    "FileReadConnector",
    "FileWriteConnector",
    "HttpReadConnector",
    "HttpWriteConnector",
    "ProcessRunConnector",
]
