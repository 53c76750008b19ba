import pytest

from tableserve.services.report_exporter import ReportExporter
from tableserve.tasks import export_payment_report, health_check


def _row(number, total=21.0):
    return {
        "order_number": number,
        "venue": "Downtown",
        "table": "T1",
        "customer_name": "Alex Guest",
        "customer_phone": "555-123-4567",
        "status": "COMPLETED",
        "payment_status": "PAID",
        "payment_method": "CASH",
        "subtotal": 20.0,
        "tax": 1.0,
        "total_amount": total,
        "paid_amount": total,
        "paid_at": "2024-05-01T12:00:00+00:00",
        "created_at": "2024-05-01T11:30:00+00:00",
    }


@pytest.fixture
def org_id():
    organization_id = "org-report-test"
    yield organization_id
    ReportExporter.clear(organization_id)


def test_export_appends_new_orders_only(org_id):
    first = ReportExporter.export_payments(org_id, [_row("ORD-1"), _row("ORD-2", 10.5)])
    assert first["success"] is True
    assert first["rows"] == 2

    second = ReportExporter.export_payments(org_id, [_row("ORD-2"), _row("ORD-3")])
    assert second["rows"] == 1

    rows = ReportExporter.read_payments(org_id)
    assert [r["order_number"] for r in rows] == ["ORD-1", "ORD-2", "ORD-3"]
    assert rows[1]["total_amount"] == 10.5
    assert all(r["exported_at"] for r in rows)


def test_clear(org_id):
    assert ReportExporter.clear(org_id) is False
    ReportExporter.export_payments(org_id, [_row("ORD-1")])
    assert ReportExporter.report_path(org_id).exists()
    assert ReportExporter.clear(org_id) is True
    assert ReportExporter.read_payments(org_id) == []


def test_export_task_runs_the_exporter(org_id):
    result = export_payment_report.apply(args=(org_id, [_row("ORD-9")])).get()
    assert result["success"] is True
    assert result["rows"] == 1
    assert "processing_time_seconds" in result


def test_worker_health_check():
    assert health_check.apply().get()["status"] == "healthy"
