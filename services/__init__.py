# WiReD v1.0.0
"""
Services package for WiReD.
Contains dataset building and directory watching.
"""
from services.dataset_builder import DatasetWriter, build_dataset, load_document
from services.watcher import DirectoryWatcher, DatasetWatcherService, DiffDocumentHandler

__all__ = [
    "DatasetWriter",
    "build_dataset",
    "load_document",
    "DirectoryWatcher",
    "DatasetWatcherService",
    "DiffDocumentHandler"
]
