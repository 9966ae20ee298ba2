"""
Parsers for CSV import/export and free-text session updates.
"""
from .csv_export import ExportResult, export_csv
from .csv_import import ImportParser, ImportReport, ImportResult, split_csv_line
from .message_parser import MessageParser, ParsedEntities

__all__ = [
    'ExportResult', 'export_csv',
    'ImportParser', 'ImportReport', 'ImportResult', 'split_csv_line',
    'MessageParser', 'ParsedEntities',
]
