"""Cloud service backup and export tools."""

from cloud_export.contacts_csv import generate_contacts_csv
from cloud_export.executor import Executor
from cloud_export.pagination import walk_numbered_pages, walk_pages
from cloud_export.protocols import WriterProtocol
from cloud_export.stabilize import stabilize_events, stabilize_zone_export
from cloud_export.steps import ExecutionStep, load_steps, parse_step
from cloud_export.writer import FileWriter

__all__ = [
    "ExecutionStep",
    "Executor",
    "FileWriter",
    "WriterProtocol",
    "generate_contacts_csv",
    "load_steps",
    "parse_step",
    "stabilize_events",
    "stabilize_zone_export",
    "walk_numbered_pages",
    "walk_pages",
]
