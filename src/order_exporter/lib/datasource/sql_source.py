"""Reference data source reading the ``orders`` tables with SQLAlchemy.

Each call opens its own short-lived session so long exports never hold a
transaction open between batches.
"""

from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta, tzinfo
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.sql.elements import ColumnElement

from order_exporter.lib.datasource.base import Row, TemplateLike, parse_filter_date
from order_exporter.lib.datasource.consent import ConsentDecoder
from order_exporter.lib.datasource.fields import FieldResolver
from order_exporter.models.base import as_utc
from order_exporter.models.export_job import JobType
from order_exporter.models.order import Order, OrderItem, OrderMeta

MARKETING_STATUSES = ("wc-completed", "wc-processing", "wc-on-hold")
REPORTING_STATUSES = (*MARKETING_STATUSES, "wc-cancelled")


class SqlOrderSource:
    """DataSource implementation over :mod:`order_exporter.models.order`.

    Args:
        session_factory: Factory for read sessions.
        resolver: Field resolver for custom exports.
        consent_meta_key: Meta key holding the terms blob.
        tz: Timezone the filter calendar dates are expressed in.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        resolver: FieldResolver | None = None,
        consent_meta_key: str = "_additional_terms",
        tz: tzinfo = UTC,
    ) -> None:
        self._session_factory = session_factory
        self.consent_meta_key = consent_meta_key
        self.resolver = resolver or FieldResolver(consent_meta_key=consent_meta_key)
        self.consent_decoder: ConsentDecoder = self.resolver.consent_decoder
        self.tz = tz

    # -- public interface -------------------------------------------------

    async def count(self, kind: str, filters: dict[str, Any], template: TemplateLike | None = None) -> int:
        if kind == JobType.MARKETING:
            stmt = select(func.count(distinct(_customer_key()))).where(*self._marketing_conditions(filters))
        elif kind == JobType.ANALYTICS:
            stmt = (
                select(func.count(OrderItem.id))
                .join(Order, OrderItem.order_id == Order.id)
                .where(*self._order_conditions(REPORTING_STATUSES, filters))
            )
        elif kind == JobType.CUSTOM:
            self._require_template(template)
            stmt = select(func.count(Order.id)).where(*self._order_conditions(REPORTING_STATUSES, filters))
        else:
            msg = f"Unsupported report kind: {kind}"
            raise ValueError(msg)

        async with self._session_factory() as session:
            return int((await session.execute(stmt)).scalar_one() or 0)

    async def fetch_batch(
        self,
        kind: str,
        filters: dict[str, Any],
        offset: int,
        limit: int,
        template: TemplateLike | None = None,
    ) -> Sequence[Row]:
        async with self._session_factory() as session:
            if kind == JobType.MARKETING:
                return await self._marketing_batch(session, filters, offset, limit)
            if kind == JobType.ANALYTICS:
                return await self._analytics_batch(session, filters, offset, limit)
            if kind == JobType.CUSTOM:
                return await self._custom_batch(session, self._require_template(template), filters, offset, limit)
        msg = f"Unsupported report kind: {kind}"
        raise ValueError(msg)

    # -- filters ----------------------------------------------------------

    def _date_bounds(self, filters: dict[str, Any]) -> tuple[datetime | None, datetime | None]:
        start = parse_filter_date(filters.get("start_date"))
        end = parse_filter_date(filters.get("end_date"))
        start_at = datetime.combine(start, time.min, tzinfo=self.tz).astimezone(UTC) if start else None
        # end_date is inclusive through 23:59:59, so bound at the next midnight
        end_before = datetime.combine(end + timedelta(days=1), time.min, tzinfo=self.tz).astimezone(UTC) if end else None
        return start_at, end_before

    def _order_conditions(self, statuses: Sequence[str], filters: dict[str, Any]) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = [Order.status.in_(statuses)]
        start_at, end_before = self._date_bounds(filters)
        if start_at is not None:
            conditions.append(Order.order_date >= start_at)
        if end_before is not None:
            conditions.append(Order.order_date < end_before)
        return conditions

    def _marketing_conditions(self, filters: dict[str, Any]) -> list[ColumnElement[bool]]:
        return [
            *self._order_conditions(MARKETING_STATUSES, filters),
            Order.billing_email.is_not(None),
            Order.billing_email != "",
        ]

    def _local(self, value: datetime | None) -> datetime | None:
        """Render stored UTC instants in the shop timezone."""
        utc_value = as_utc(value)
        return utc_value.astimezone(self.tz) if utc_value is not None else None

    @staticmethod
    def _require_template(template: TemplateLike | None) -> TemplateLike:
        if template is None or not template.columns:
            msg = "Custom exports require a template with at least one field"
            raise ValueError(msg)
        return template

    async def _load_meta(self, session: AsyncSession, order_ids: Sequence[int], keys: set[str]) -> dict[int, dict[str, Any]]:
        """Load ``keys`` for ``order_ids`` as ``{order_id: {key: value}}``."""
        meta: dict[int, dict[str, Any]] = {order_id: {} for order_id in order_ids}
        if not order_ids or not keys:
            return meta
        stmt = (
            select(OrderMeta.order_id, OrderMeta.meta_key, OrderMeta.meta_value)
            .where(OrderMeta.order_id.in_(order_ids), OrderMeta.meta_key.in_(keys))
            .order_by(OrderMeta.id)
        )
        for order_id, key, value in (await session.execute(stmt)).all():
            meta[order_id][key] = value
        return meta

    # -- report kinds -----------------------------------------------------

    async def _marketing_batch(self, session: AsyncSession, filters: dict[str, Any], offset: int, limit: int) -> list[Row]:
        conditions = self._marketing_conditions(filters)
        customer = _customer_key()
        last_order_date = func.max(Order.order_date)
        groups_stmt = (
            select(
                customer,
                func.sum(Order.total),
                func.count(distinct(Order.id)),
                last_order_date,
            )
            .where(*conditions)
            .group_by(customer)
            .order_by(last_order_date.desc(), customer)
            .offset(offset)
            .limit(limit)
        )
        groups = (await session.execute(groups_stmt)).all()
        if not groups:
            return []

        keys = [key for key, *_ in groups]
        orders_stmt = (
            select(
                Order.id,
                customer.label("customer_key"),
                Order.billing_email,
                Order.billing_first_name,
                Order.billing_last_name,
            )
            .where(*conditions, customer.in_(keys))
            .order_by(Order.order_date.desc(), Order.id.desc())
        )
        orders = (await session.execute(orders_stmt)).all()
        meta = await self._load_meta(session, [o.id for o in orders], {self.consent_meta_key})

        # Orders are newest first, so the first non-empty value per customer wins
        details: dict[str, dict[str, Any]] = {key: {} for key in keys}
        for order in orders:
            detail = details[order.customer_key]
            detail.setdefault("email", order.billing_email)
            if not detail.get("first_name") and order.billing_first_name:
                detail["first_name"] = order.billing_first_name
            if not detail.get("last_name") and order.billing_last_name:
                detail["last_name"] = order.billing_last_name
            blob = meta[order.id].get(self.consent_meta_key)
            if "marketing_consent" not in detail and blob:
                detail["marketing_consent"] = self.consent_decoder.decode(blob)

        rows: list[Row] = []
        for key, total_spent, order_count, last_date in groups:
            detail = details[key]
            rows.append(
                {
                    "email": detail.get("email", key),
                    "first_name": detail.get("first_name"),
                    "last_name": detail.get("last_name"),
                    "marketing_consent": detail.get("marketing_consent", ""),
                    "total_spent": total_spent,
                    "order_count": order_count,
                    "last_order_date": self._local(last_date),
                }
            )
        return rows

    async def _analytics_batch(self, session: AsyncSession, filters: dict[str, Any], offset: int, limit: int) -> list[Row]:
        stmt = (
            select(Order, OrderItem)
            .join(OrderItem, OrderItem.order_id == Order.id)
            .where(*self._order_conditions(REPORTING_STATUSES, filters))
            .order_by(Order.order_date.desc(), Order.id.desc(), OrderItem.id)
            .offset(offset)
            .limit(limit)
        )
        pairs = (await session.execute(stmt)).all()
        order_ids = list(dict.fromkeys(order.id for order, _item in pairs))
        meta = await self._load_meta(session, order_ids, {self.consent_meta_key})

        rows: list[Row] = []
        for order, item in pairs:
            full_name = " ".join(part for part in (order.billing_first_name, order.billing_last_name) if part)
            rows.append(
                {
                    "order_id": order.id,
                    "order_date": self._local(order.order_date),
                    "order_status": order.status,
                    "order_total": order.total,
                    "order_currency": order.currency,
                    "billing_email": order.billing_email,
                    "billing_phone": order.billing_phone,
                    "billing_full_name": full_name,
                    "billing_city": order.billing_city,
                    "billing_postcode": order.billing_postcode,
                    "user_id": order.customer_id,
                    "item_name": item.name,
                    "item_quantity": item.quantity,
                    "item_total": item.line_total,
                    "coupons_used": order.coupons_used,
                    "marketing_consent": self.consent_decoder.decode(meta[order.id].get(self.consent_meta_key)),
                }
            )
        return rows

    async def _custom_batch(
        self,
        session: AsyncSession,
        template: TemplateLike,
        filters: dict[str, Any],
        offset: int,
        limit: int,
    ) -> list[Row]:
        stmt = (
            select(Order)
            .where(*self._order_conditions(REPORTING_STATUSES, filters))
            .order_by(Order.order_date.desc(), Order.id.desc())
            .offset(offset)
            .limit(limit)
        )
        orders = list((await session.execute(stmt)).scalars().all())
        columns = template.columns
        meta = await self._load_meta(session, [o.id for o in orders], self.resolver.meta_keys_for(columns))
        extractors = {field: self.resolver.resolve(field) for field in columns}

        rows: list[Row] = []
        for order in orders:
            record = _order_record(order, meta[order.id])
            record["order_date"] = self._local(order.order_date)
            rows.append({field: extract(record) for field, extract in extractors.items()})
        return rows


def _order_record(order: Order, meta: dict[str, Any]) -> dict[str, Any]:
    return {
        "order_id": order.id,
        "order_date": order.order_date,
        "order_status": order.status,
        "order_total": order.total,
        "order_currency": order.currency,
        "customer_id": order.customer_id,
        "billing_email": order.billing_email,
        "billing_first_name": order.billing_first_name,
        "billing_last_name": order.billing_last_name,
        "billing_phone": order.billing_phone,
        "billing_city": order.billing_city,
        "billing_postcode": order.billing_postcode,
        "coupons_used": order.coupons_used,
        "meta": meta,
    }


def _customer_key() -> ColumnElement[str]:
    """Marketing rows group customers by case-insensitive billing email."""
    return func.lower(Order.billing_email)
