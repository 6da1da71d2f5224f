"""
Output storage for crawler results.

Appends accepted repositories to a CSV file and persists the set of
already processed repositories so a restarted crawl skips prior work.
"""

import csv
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Iterable, List, Sequence, Set, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ResultSink:
    """
    Stores crawler results.

    - ``csv_path``: append-only CSV, header written when the file is created
    - ``processed_path``: JSON list of processed repository identifiers

    No deduplication happens here; the processed set upstream owns that.
    """

    def __init__(self, csv_path: PathLike, processed_path: PathLike, header: Sequence[str]):
        """
        Initialize result sink.

        Args:
            csv_path: CSV output file
            processed_path: Processed-set side file
            header: CSV column titles
        """
        self.csv_path = Path(csv_path)
        self.processed_path = Path(processed_path)
        self.header = list(header)

    def append(self, rows: Iterable[Sequence[Any]]) -> int:
        """
        Append rows to the CSV.

        Zero rows means no file operation at all.

        Returns:
            Number of rows written
        """
        rows = [list(row) for row in rows]
        if not rows:
            return 0

        write_header = not self.csv_path.exists() or self.csv_path.stat().st_size == 0
        self.csv_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self.csv_path, "a", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            if write_header:
                writer.writerow(self.header)
            writer.writerows(rows)

        return len(rows)

    def load_processed_set(self) -> Set[str]:
        """
        Load processed identifiers. A missing file yields an empty set.

        An unreadable file is renamed to ``<name>.corrupt`` before returning
        an empty set, so the next persist cannot replace it with fewer ids.
        """
        if not self.processed_path.exists():
            return set()
        try:
            with open(self.processed_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON list, got {type(data).__name__}")
        except (OSError, ValueError) as e:
            corrupt_path = self.processed_path.with_name(self.processed_path.name + ".corrupt")
            logger.warning(
                "Could not load processed repositories from %s: %s (moved to %s)",
                self.processed_path, e, corrupt_path,
            )
            os.replace(self.processed_path, corrupt_path)
            return set()

        processed = {str(item) for item in data}
        logger.info("Loaded %d already processed repositories", len(processed))
        return processed

    def persist_processed_set(self, processed: Set[str]) -> None:
        """
        Overwrite the processed-set file atomically.

        The list is written to a temporary file in the same directory and
        renamed over the target, so a crash mid-write keeps the prior file.
        """
        directory = self.processed_path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.processed_path.name}.", suffix=".tmp", dir=str(directory)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(sorted(processed), f)
            os.replace(tmp_path, self.processed_path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def count_rows(self) -> int:
        """Count data rows in the CSV (header excluded)."""
        if not self.csv_path.exists():
            return 0
        with open(self.csv_path, "r", encoding="utf-8", newline="") as f:
            rows: List[List[str]] = list(csv.reader(f))
        return max(len(rows) - 1, 0)
