import logging
import os
import time
import traceback
import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Union

import psutil

MdValues = Optional[Union[str, int, float, bool, date, BaseException, List[str]]]

BYTES_PER_MB = 1000 * 1000


class ProcessLogger:
    """
    Structured "key=value, ..." logs for one copy, copy pass or extension run.

    default values (parent, process_name, uuid, status, timing and memory use)
    are owned by the logger, everything else is metadata added by the caller.
    """

    # default_data keys that can not be added as metadata
    protected_keys = [
        "parent",
        "process_name",
        "process_id",
        "uuid",
        "status",
        "duration",
        "error_type",
        "rss_mb",
        "free_mem_pct",
        "print_log",
    ]

    def __init__(self, process_name: str, **metadata: MdValues) -> None:
        """
        create a process logger with a name and optional metadata. nothing is
        logged until the process is started.
        """
        logging.getLogger().setLevel("INFO")

        self.default_data: Dict[str, Any] = {
            "parent": os.environ.get("SERVICE_NAME", "transit_copier"),
            "process_name": process_name,
        }
        self.metadata: Dict[str, str] = {}
        self.start_time = 0.0

        self.add_metadata(**metadata, print_log=False)

    @property
    def started(self) -> bool:
        """True once log_start has run"""
        return "uuid" in self.default_data

    def _log_string(self) -> str:
        self.default_data["rss_mb"] = int(psutil.Process().memory_info().rss / BYTES_PER_MB)
        self.default_data["free_mem_pct"] = int(100 - psutil.virtual_memory().percent)

        values = {**self.default_data, **self.metadata}
        return ", ".join(f"{key}={value}" for key, value in values.items())

    def _set_status(self, status: str) -> None:
        self.default_data["status"] = status
        if status != "started":
            self.default_data["duration"] = f"{time.monotonic() - self.start_time:.2f}"

    def add_metadata(self, **metadata: MdValues) -> None:
        """
        add metadata to the process logger

        :param print_log: if True(default), log after the metadata is added
        """
        print_log = bool(metadata.pop("print_log", True))
        self.metadata.update(
            {str(key): str(value) for key, value in metadata.items() if key not in self.protected_keys}
        )

        if not print_log:
            return
        if not self.started:
            self.log_start()
        self._set_status("add_metadata")
        logging.info(self._log_string())

    def log_start(self) -> None:
        """log the start of a process"""
        self.default_data["uuid"] = uuid.uuid4()
        self.default_data["process_id"] = os.getpid()
        self.default_data.pop("duration", None)
        self.default_data.pop("error_type", None)
        self.start_time = time.monotonic()

        self._set_status("started")
        logging.info(self._log_string())

    def log_complete(self) -> None:
        """log the completion of a process with its duration"""
        self._set_status("complete")
        logging.info(self._log_string())

    def log_failure(self, exception: BaseException) -> None:
        """
        log the failure of a process with the exception type, the traceback
        lines and the exception message, each prefixed with the run uuid
        """
        if not self.started:
            self.log_start()

        self._set_status("failed")
        self.default_data["error_type"] = type(exception).__name__
        run_uuid = self.default_data["uuid"]

        # exceptions that were never raised have no traceback
        lines = traceback.format_tb(exception.__traceback__)
        lines += traceback.format_exception_only(type(exception), exception)
        for entry in lines:
            for line in entry.strip("\n").split("\n"):
                logging.error("uuid=%s, %s", run_uuid, line.strip())

        if exception.__traceback__ is not None:
            logging.exception(self._log_string(), exc_info=exception)
        else:
            logging.error(self._log_string())
