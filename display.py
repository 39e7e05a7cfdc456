"""
Rendering of domain entities for the command line.
"""

import csv
import json
from dataclasses import asdict, fields, is_dataclass
from typing import IO, List, Optional, Sequence

FORMATS = ("pipe", "csv", "json")
NO_RESOURCES = "No resources found."
NO_PAGES = "Number of pages not available."
NO_COUNT = "Number of resources not available."


def _row(entity) -> dict:
    row = asdict(entity)
    for key, value in row.items():
        if isinstance(value, (list, tuple)):
            row[key] = ",".join(str(v) for v in value)
    return row


def _columns(entity) -> List[str]:
    return [f.name for f in fields(entity)]


class Display:
    """
    Writes entities as pipe separated rows, CSV or JSON lines.

    A Display can be called once with a full listing or repeatedly with one
    page at a time (flush mode); headers are written only once.
    """

    def __init__(
        self, out: IO[str], format: str = "pipe", no_headers: bool = False
    ):
        if format not in FORMATS:
            raise ValueError(f"Unknown output format: {format}")
        self.out = out
        self.format = format
        self.no_headers = no_headers
        self._headers_written = False
        self.rows_written = 0

    def __call__(self, entities: Sequence) -> None:
        self.write(entities)

    def write(self, entities: Sequence) -> None:
        if not entities:
            return
        if self.format == "json":
            for entity in entities:
                self.out.write(json.dumps(_row(entity)) + "\n")
                self.rows_written += 1
            return

        columns = _columns(entities[0])
        if self.format == "csv":
            writer = csv.DictWriter(self.out, fieldnames=columns, lineterminator="\n")
            if not self.no_headers and not self._headers_written:
                writer.writeheader()
            for entity in entities:
                writer.writerow(_row(entity))
                self.rows_written += 1
        else:
            if not self.no_headers and not self._headers_written:
                self.out.write(" | ".join(c.upper() for c in columns) + "\n")
            for entity in entities:
                row = _row(entity)
                self.out.write(" | ".join(str(row[c]) for c in columns) + "\n")
                self.rows_written += 1
        self._headers_written = True

    def finish(self) -> None:
        """Report an empty listing."""
        if self.rows_written == 0:
            self.out.write(NO_RESOURCES + "\n")


def print_entity(out: IO[str], entity, format: str = "pipe") -> None:
    """Print a single entity as ``field: value`` lines, or one JSON object."""
    if not is_dataclass(entity):
        raise TypeError(f"Cannot display {type(entity).__name__}")
    row = _row(entity)
    if format == "json":
        out.write(json.dumps(row) + "\n")
        return
    for key, value in row.items():
        out.write(f"{key}: {value}\n")


def print_count(out: IO[str], count: Optional[int], pages: bool = True) -> None:
    if count is None:
        out.write((NO_PAGES if pages else NO_COUNT) + "\n")
        return
    out.write(f"{count}\n")
