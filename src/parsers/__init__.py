from .batch_parser import BatchDocumentParser
from .document_parser import DocumentParser, indent_level
from .line_parser import PRIORITY_SHORTCUTS, LineParser
from .status import checkbox_to_status, status_to_checkbox

__all__ = [
    "BatchDocumentParser",
    "DocumentParser",
    "indent_level",
    "PRIORITY_SHORTCUTS",
    "LineParser",
    "checkbox_to_status",
    "status_to_checkbox",
]
