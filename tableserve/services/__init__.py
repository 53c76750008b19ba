"""
Services Module

Business logic used by the API routers, Celery tasks and scripts. Services
take an ``AsyncSession`` and raise ``TableServeError`` subclasses.

Services:
    - organizations, venues, menus, qr_codes: tenant setup
    - orders, order_grouping, tax: order lifecycle and totals
    - public: unauthenticated guest ordering
    - subscriptions, payment: plans, billing and the payment provider
    - analytics, report_exporter: dashboards and Excel payment reports
    - uploads: image storage
"""

from tableserve.services.report_exporter import ReportExporter

__all__ = ["ReportExporter"]
