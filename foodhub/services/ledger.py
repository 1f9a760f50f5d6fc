"""
Order Ledger with Concurrency Control

Appends order snapshots to an Excel workbook. Several Celery worker
processes may export at once, so every read-modify-write of the workbook
happens under a file lock.

Author: FoodHub Team
Version: 1.0.0
"""

import logging
import math
from datetime import datetime
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

import pandas as pd
from filelock import FileLock, Timeout

from foodhub.core.config import get_settings

logger = logging.getLogger(__name__)


class OrderLedger:
    """Lock-guarded Excel ledger of placed orders."""

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "customer_name",
        "customer_email",
        "restaurant_id",
        "restaurant_title",
        "items",
        "total_amount",
        "payment_method",
        "delivery_address",
        "order_status",
        "exported_at",
    ]

    def __init__(
        self,
        data_dir: Union[str, Path],
        filename: str = "orders.xlsx",
        lock_timeout: int = 30,
    ):
        self.data_dir = Path(data_dir)
        self.file_path = self.data_dir / filename
        self.lock_path = self.data_dir / f"{filename}.lock"
        self.lock_timeout = lock_timeout

    def _ensure_data_dir(self) -> None:
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    def _load_or_create_df(self) -> pd.DataFrame:
        if self.file_path.exists():
            try:
                return pd.read_excel(self.file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {self.file_path}: {e}")
        return pd.DataFrame(columns=self.ORDER_COLUMNS)

    def export_order(self, order_data: dict[str, Any]) -> dict[str, Any]:
        """Append one order row. Failures are reported in the result, not raised."""
        self._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            with FileLock(str(self.lock_path), timeout=self.lock_timeout):
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = self._load_or_create_df()

                export_time = datetime.now().isoformat()
                new_row = {column: order_data.get(column) for column in self.ORDER_COLUMNS}
                new_row["date_time"] = order_data.get("created_at", export_time)
                new_row["exported_at"] = export_time

                new_df = pd.DataFrame([new_row], columns=self.ORDER_COLUMNS)
                df = new_df if df.empty else pd.concat([df, new_df], ignore_index=True)
                df.to_excel(str(self.file_path), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to ledger")
                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({self.lock_timeout}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        except Exception as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_id}")

        return result

    def get_all_orders(self) -> list[dict[str, Any]]:
        """All ledger rows; empty cells come back as None."""
        if not self.file_path.exists():
            return []

        try:
            df = pd.read_excel(self.file_path, engine="openpyxl")
        except Exception as e:
            logger.error(f"Error reading ledger: {e}")
            return []

        records = df.astype(object).where(pd.notna(df), None).to_dict("records")
        return [
            {key: _clean(value) for key, value in record.items()}
            for record in records
        ]

    def clear_all(self) -> bool:
        """Delete the workbook and its lock file."""
        try:
            for f in (self.file_path, self.lock_path):
                if f.exists():
                    f.unlink()
            logger.info("Order ledger cleared")
            return True
        except OSError as e:
            logger.error(f"Error clearing ledger: {e}")
            return False


def _clean(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if hasattr(value, "item"):
        # numpy scalar
        return value.item()
    return value


@lru_cache()
def get_order_ledger(data_dir: Optional[str] = None) -> OrderLedger:
    settings = get_settings()
    return OrderLedger(
        data_dir=data_dir or settings.data_directory,
        filename=settings.ledger_filename,
        lock_timeout=settings.ledger_lock_timeout,
    )
