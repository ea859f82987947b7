"""Services layer - collaborators, caches, configuration and workers."""

from sheet_library.services.error_reporter import (
	CollectingErrorReporter,
	ErrorReporter,
	LoggingErrorReporter,
	ReportedError,
)
from sheet_library.services.page_count_provider import PageCountProvider, QtPdfPageCountProvider
from sheet_library.services.settings_manager import LibrarySettings, SettingsManager
from sheet_library.services.load_workers import LoadWorker, WorkerBatch
from sheet_library.services.volume_byte_cache import VolumeByteCache
from sheet_library.services.preview_cache import PreviewCache, preview_key

__all__ = [
	"CollectingErrorReporter",
	"ErrorReporter",
	"LoggingErrorReporter",
	"ReportedError",
	"PageCountProvider",
	"QtPdfPageCountProvider",
	"LibrarySettings",
	"SettingsManager",
	"LoadWorker",
	"WorkerBatch",
	"VolumeByteCache",
	"PreviewCache",
	"preview_key",
]
