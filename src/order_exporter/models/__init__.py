"""ORM model registry: import all models so Alembic autogenerate discovers them."""

from order_exporter.models.export_job import ExportJob, JobStatus, JobType
from order_exporter.models.export_schedule import ExportSchedule, FrequencyType
from order_exporter.models.export_template import ExportTemplate
from order_exporter.models.order import Order, OrderItem, OrderMeta

__all__ = [
    "ExportJob",
    "ExportSchedule",
    "ExportTemplate",
    "FrequencyType",
    "JobStatus",
    "JobType",
    "Order",
    "OrderItem",
    "OrderMeta",
]
