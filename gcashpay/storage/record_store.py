from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable, List

from gcashpay.config import settings
from gcashpay.errors import StorageError
from gcashpay.models import PaymentClaim

logger = logging.getLogger(__name__)


class RecordStore:
    """Whole-file JSON store for payment claims.

    Every read returns the full list and every write replaces it. There is no
    locking: two writers racing on ``save_all`` lose one of the updates.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def load_all(self) -> List[PaymentClaim]:
        if not self.path.exists():
            return []
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("record store read failed", extra={"extra": {"path": str(self.path), "err": str(e)}})
            raise StorageError(f"Cannot read payment records: {e}") from e
        except UnicodeDecodeError as e:
            logger.error("record store is not valid UTF-8", extra={"extra": {"path": str(self.path), "err": str(e)}})
            raise StorageError("Payment records file is corrupt (invalid UTF-8).") from e
        if not raw.strip():
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.error("record store is not valid JSON", extra={"extra": {"path": str(self.path), "err": str(e)}})
            raise StorageError("Payment records file is corrupt (invalid JSON).") from e
        if not isinstance(data, list):
            raise StorageError("Payment records file must contain a JSON array.")
        records: List[PaymentClaim] = []
        for idx, item in enumerate(data):
            if not isinstance(item, dict):
                raise StorageError(f"Payment record #{idx} is not an object.")
            try:
                records.append(PaymentClaim.from_dict(item))
            except ValueError as e:
                raise StorageError(f"Payment record #{idx} is malformed: {e}") from e
        return records

    def save_all(self, records: Iterable[PaymentClaim]) -> None:
        payload = [r.to_dict() for r in records]
        text = json.dumps(payload, indent=4, ensure_ascii=False)
        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the target so os.replace stays on one filesystem
            fd, tmp_name = tempfile.mkstemp(prefix=".pending_payments.", suffix=".tmp", dir=str(self.path.parent))
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            logger.error("record store write failed", extra={"extra": {"path": str(self.path), "err": str(e)}})
            raise StorageError(f"Cannot write payment records: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
        logger.debug("record store saved", extra={"extra": {"path": str(self.path), "count": len(payload)}})


def get_store() -> RecordStore:
    return RecordStore(settings.payments_file)
