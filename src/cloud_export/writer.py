"""Smart file writer for export artifacts."""

import json
import os
from pathlib import Path
from typing import Any

from loguru import logger


class FileWriter:
    """Write output files in a smart way.

    - Do not override files if contents are the same.
    - Write through a temporary sibling file, so an interrupted write never
      leaves a truncated file under the final name.
    - Keep counts of same/changed/new files for the final summary.
    """

    def __init__(self, *, dry_run: bool = False) -> None:
        self.dry_run = dry_run
        logger.debug("Writer ready, dry_run {!r}", dry_run)

        # Absolute paths written this session. Used to catch two steps writing one file.
        self._files_made: set[str] = set()

        self._num_same = 0
        self._num_changed = 0
        self._num_new = 0

    def make_data_file(
        self,
        path: str | Path,
        *,
        contents: str | None = None,
        data: Any = None,
    ) -> None:
        """Write contents to a file, creating parent directories as needed.

        Args:
            path: Output file path.
            contents: String contents to write. If None, serialize data to json.
            data: Data to serialize as json. Mutually exclusive with contents.
        """
        if contents is None:
            contents = json.dumps(data, sort_keys=True, indent=4, ensure_ascii=False) + "\n"
        elif data is not None:
            msg = "Cannot specify both contents and data"
            raise ValueError(msg)

        fname = str(Path(path).expanduser().resolve())
        if fname in self._files_made:
            msg = f"File {fname!r} written twice in one run"
            raise ValueError(msg)
        self._files_made.add(fname)

        action = "create"
        try:
            with open(fname, encoding="utf-8") as f:
                if f.read() == contents:
                    self._num_same += 1
                    logger.debug("Unchanged {!r}", fname)
                    return
            action = "update"
        except (FileNotFoundError, UnicodeDecodeError):
            pass

        if action == "update":
            self._num_changed += 1
        else:
            self._num_new += 1

        if self.dry_run:
            logger.info("dry-run: would {} {!r}", action, fname)
            return

        Path(fname).parent.mkdir(parents=True, exist_ok=True)
        tmp_name = f"{fname}.tmp-{os.getpid()}"
        try:
            with open(tmp_name, "w", encoding="utf-8") as f:
                f.write(contents)
            os.replace(tmp_name, fname)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.info("Wrote ({}) {!r}", action, fname)

    def finalize(self) -> None:
        """Log update statistics."""
        log_msg = (
            f"Outputs: {self._num_same} same, {self._num_changed} changed, {self._num_new} new"
        )
        if self._num_changed or self._num_new:
            logger.info(log_msg)
        else:
            logger.debug(log_msg)
