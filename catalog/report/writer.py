import json
import logging
import os
import tempfile
from typing import Any, Dict, List

from catalog.models import CrawlReport

logger = logging.getLogger(__name__)

DEFAULT_REPORT_PATH = "collections.json"


def _current_umask() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return umask


class ReportWriter:
    """Writes a crawl report as an indented UTF-8 JSON document."""

    def __init__(self, path: str = DEFAULT_REPORT_PATH):
        self.path = path

    def write(self, report: CrawlReport) -> str:
        """Serialize the report, replacing any existing file at the path.

        The document is written to a temporary file next to the target and
        moved into place, so an interrupted write never leaves a truncated
        report behind.

        Returns:
            The path written to
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(prefix=".collections-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
            # mkstemp files are private; give the report regular file permissions
            os.chmod(tmp_path, 0o666 & ~_current_umask())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

        logger.info("Saved %d collections to %s", len(report.collections), self.path)
        return self.path


def load_report(path: str = DEFAULT_REPORT_PATH) -> List[Dict[str, Any]]:
    """Read a report previously written by ReportWriter."""
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)
