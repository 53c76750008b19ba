"""
Payment Report Exporter with Concurrency Control

Appends paid-order rows to a per-organization Excel workbook. Several
Celery workers may export at the same time, so every write happens under
a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from tableserve.core.config import get_settings

logger = logging.getLogger(__name__)


class ReportExporter:
    """Thread- and process-safe Excel report writer."""

    COLUMNS = [
        "order_number",
        "venue",
        "table",
        "customer_name",
        "customer_phone",
        "status",
        "payment_status",
        "payment_method",
        "subtotal",
        "tax",
        "total_amount",
        "paid_amount",
        "paid_at",
        "created_at",
        "exported_at",
    ]

    @classmethod
    def _data_dir(cls) -> Path:
        data_dir = Path(get_settings().data_directory)
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")
        return data_dir

    @classmethod
    def report_path(cls, organization_id: str) -> Path:
        return cls._data_dir() / f"payments_{organization_id}.xlsx"

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except Exception as e:
                logger.warning(f"Error reading {file_path}, starting a new sheet: {e}")
        return pd.DataFrame(columns=cls.COLUMNS)

    @classmethod
    def export_payments(cls, organization_id: str, rows: list[dict[str, Any]]) -> dict[str, Any]:
        """
        Append payment rows to the organization's report, skipping orders
        that were already exported.

        Returns:
            dict: success flag, message, rows written and file path
        """
        file_path = cls.report_path(organization_id)
        lock_timeout = get_settings().report_lock_timeout
        result = {
            "success": False,
            "message": "",
            "organization_id": organization_id,
            "rows": 0,
            "file": str(file_path),
            "exported_at": None,
        }

        try:
            with FileLock(f"{file_path}.lock", timeout=lock_timeout):
                logger.debug(f"Lock acquired for {file_path.name}")

                df = cls._load_or_create_df(file_path)
                existing = set(df["order_number"].astype(str)) if not df.empty else set()

                export_time = datetime.now().isoformat()
                new_rows = [
                    {**{col: row.get(col) for col in cls.COLUMNS}, "exported_at": export_time}
                    for row in rows
                    if str(row.get("order_number")) not in existing
                ]

                if new_rows:
                    df = pd.concat([df, pd.DataFrame(new_rows, columns=cls.COLUMNS)], ignore_index=True)
                    df.to_excel(str(file_path), index=False, engine="openpyxl")

                logger.info(f"Exported {len(new_rows)} payment rows for organization {organization_id}")
                result.update(
                    success=True,
                    message=f"{len(new_rows)} rows exported",
                    rows=len(new_rows),
                    exported_at=export_time,
                )

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            logger.error(f"Lock timeout exporting payments for organization {organization_id}")

        return result

    @classmethod
    def read_payments(cls, organization_id: str) -> list[dict[str, Any]]:
        file_path = cls.report_path(organization_id)
        if not file_path.exists():
            return []
        df = pd.read_excel(file_path, engine="openpyxl")
        return df.to_dict("records")

    @classmethod
    def clear(cls, organization_id: str) -> bool:
        file_path = cls.report_path(organization_id)
        removed = False
        for f in (file_path, Path(f"{file_path}.lock")):
            if f.exists():
                f.unlink()
                removed = True
        if removed:
            logger.info(f"Payment report cleared for organization {organization_id}")
        return removed
