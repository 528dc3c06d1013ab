"""
Yote — Generic Resource Service
================================

What:  CRUD and query building shared by every resource (tasks, notes).
How:   Works in terms of stored field names, so a model gains new
       filterable/updatable fields just by gaining columns.
Who:   Subclassed by TaskService and NoteService; called by route handlers.

Ref path queries:
    GET /api/{resource}/by-{refKey}/{refId}[/{k}/{v}]...
        refKey=refId plus any number of trailing key/value pairs.
        An odd number of trailing segments is rejected.
    GET /api/{resource}/by-{refKey}-list?{refKey}=a&{refKey}=b
        refKey IN (a, b)

    The literal string "null" matches a NULL field in both forms.

Error Handling Strategy:
    Only store errors are caught here (SQLAlchemyError). They are wrapped in
    UpstreamError carrying the store's own message; everything else
    propagates to the global handlers untouched.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Type

from sqlalchemy import Boolean, Column, Integer, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from yote.config import settings
from yote.database import Base, utcnow
from yote.exceptions import NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

# Fields the server owns; never taken from a request body
PROTECTED_FIELDS = frozenset({"_id", "created", "updated"})


def parse_ref_path(ref_key: str, ref_id: str, rest: str = "") -> List[Tuple[str, str]]:
    """
    Turn the segments of a by-{refKey}/{refId}/... route into (field, raw value) pairs.

    Args:
        ref_key: Field named in the `by-{refKey}` segment
        ref_id:  Value segment following it
        rest:    Remaining path after refId, without the leading slash
                 ("" when there is none)

    Raises:
        ValidationError: Trailing segments do not form key/value pairs.
    """
    pairs = [(ref_key, ref_id)]
    if not rest:
        return pairs
    segments = rest.split("/")
    if len(segments) % 2 != 0:
        raise ValidationError(message="Invalid parameter length", context={"path": rest})
    for i in range(0, len(segments), 2):
        pairs.append((segments[i], segments[i + 1]))
    return pairs


class ResourceService:
    """
    Document-style CRUD over one ORM model.

    Subclasses set `model`, `item_key` (singular JSON key, e.g. "task") and
    `list_key` (plural JSON key, e.g. "tasks").
    """

    model: Type[Base]
    item_key: str
    list_key: str

    # ── Field helpers ─────────────────────────────────────────────────────

    def _column(self, field: str) -> Column:
        columns = self.model.field_columns()
        if field not in columns:
            raise ValidationError(
                message=f"Unknown {self.item_key} field: {field}",
                field=field,
            )
        return columns[field]

    def _coerce(self, field: str, raw: Optional[str]) -> Any:
        """Convert a path/query string to the column's Python value."""
        column = self._column(field)
        if raw is None or raw == "null":
            return None
        if isinstance(column.type, Boolean):
            lowered = raw.lower()
            if lowered in ("true", "1"):
                return True
            if lowered in ("false", "0"):
                return False
            raise ValidationError(message=f"Invalid boolean for {field}: {raw}", field=field)
        if isinstance(column.type, Integer):
            try:
                return int(raw)
            except ValueError:
                raise ValidationError(message=f"Invalid integer for {field}: {raw}", field=field)
        return raw

    def _writable(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Map a request body onto attribute keys, dropping unknown and protected fields."""
        attributes = self.model.field_attributes()
        return {
            attributes[field]: value
            for field, value in data.items()
            if field in attributes and field not in PROTECTED_FIELDS
        }

    # ── Store access ──────────────────────────────────────────────────────

    async def _find(
        self,
        db: AsyncSession,
        filters: Iterable[Tuple[str, Any]] = (),
        membership: Optional[Tuple[str, Sequence[Any]]] = None,
        offset: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[Base]:
        query = select(self.model)
        for field, value in filters:
            column = self._column(field)
            query = query.where(column.is_(None) if value is None else column == value)
        if membership is not None:
            field, values = membership
            query = query.where(self._column(field).in_(values))
        query = query.order_by(self._column("created"))
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Store error listing %s: %s", self.list_key, e)
            raise UpstreamError(message=str(e), context={"error_type": type(e).__name__})
        return list(result.scalars().all())

    async def _get(self, db: AsyncSession, item_id: str) -> Base:
        try:
            row = await db.get(self.model, item_id)
        except SQLAlchemyError as e:
            logger.error("Store error fetching %s %s: %s", self.item_key, item_id, e)
            raise UpstreamError(message=str(e), context={"error_type": type(e).__name__})
        if row is None:
            raise NotFoundError(resource=self.item_key, resource_id=item_id)
        return row

    async def _flush(self, db: AsyncSession, action: str) -> None:
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Store error on %s %s: %s", action, self.item_key, e)
            raise UpstreamError(message=str(e), context={"error_type": type(e).__name__})

    def _documents(self, rows: Iterable[Base]) -> List[Dict[str, Any]]:
        return [row.to_document() for row in rows]

    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_all(self, db: AsyncSession) -> List[Dict[str, Any]]:
        return self._documents(await self._find(db))

    async def list_by_refs(
        self, db: AsyncSession, ref_key: str, ref_id: str, rest: str = ""
    ) -> List[Dict[str, Any]]:
        """Documents matching every key/value pair of a ref path."""
        filters = [
            (field, self._coerce(field, raw))
            for field, raw in parse_ref_path(ref_key, ref_id, rest)
        ]
        return self._documents(await self._find(db, filters=filters))

    async def list_by_values(
        self, db: AsyncSession, ref_key: str, values: Sequence[str]
    ) -> List[Dict[str, Any]]:
        """Documents whose `ref_key` is one of `values` (repeated query param)."""
        if not values:
            raise ValidationError(
                message=f"Missing query param(s) specified by the ref: {ref_key}",
                field=ref_key,
            )
        coerced = [self._coerce(ref_key, value) for value in values]
        return self._documents(await self._find(db, membership=(ref_key, coerced)))

    async def search(
        self, db: AsyncSession, params: Iterable[Tuple[str, str]]
    ) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, int]]]:
        """
        Equality search over arbitrary fields with optional page/per pagination.

        Returns:
            (documents, pagination) where pagination is None unless `page` or
            `per` was supplied.
        """
        filters: List[Tuple[str, Any]] = []
        page: Optional[int] = None
        per: Optional[int] = None
        for key, raw in params:
            if key in ("page", "per"):
                try:
                    number = int(raw)
                except ValueError:
                    raise ValidationError(message=f"Invalid {key}: {raw}", field=key)
                if number < 1:
                    raise ValidationError(message=f"Invalid {key}: {raw}", field=key)
                if key == "page":
                    page = number
                else:
                    per = number
            else:
                logger.debug("found search query param: %s", key)
                filters.append((key, self._coerce(key, raw)))

        if page is None and per is None:
            return self._documents(await self._find(db, filters=filters)), None

        page = page or 1
        per = per or settings.search_default_per
        rows = await self._find(db, filters=filters, offset=(page - 1) * per, limit=per)
        return self._documents(rows), {"page": page, "per": per}

    async def get_by_id(self, db: AsyncSession, item_id: str) -> Dict[str, Any]:
        return (await self._get(db, item_id)).to_document()

    def get_schema(self) -> Dict[str, Dict[str, Any]]:
        """Field descriptions, used for REST documentation screens."""
        schema = {}
        for field, column in self.model.field_columns().items():
            default = column.default
            schema[field] = {
                "type": type(column.type).__name__,
                "nullable": bool(column.nullable),
                "default": default.arg if default is not None and default.is_scalar else None,
            }
        return schema

    def get_default(self) -> Dict[str, Any]:
        """Blank document handed to create forms."""
        defaults: Dict[str, Any] = {}
        for field, column in self.model.field_columns().items():
            if field in PROTECTED_FIELDS:
                continue
            default = column.default
            defaults[field] = default.arg if default is not None and default.is_scalar else None
        return defaults

    # ── Writes ────────────────────────────────────────────────────────────

    async def create(
        self, db: AsyncSession, data: Dict[str, Any], user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        values = self._writable(data)
        attributes = self.model.field_attributes()
        user_attr = attributes.get("_user")
        if user_attr and values.get(user_attr) is None and user_id:
            values[user_attr] = user_id

        row = self.model(**values)
        db.add(row)
        await self._flush(db, "create")
        logger.info("Created %s %s", self.item_key, row.id)
        return row.to_document()

    async def update(self, db: AsyncSession, item_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        row = await self._get(db, item_id)
        for key, value in self._writable(data).items():
            setattr(row, key, value)
        row.updated = utcnow()
        await self._flush(db, "update")
        return row.to_document()

    async def delete(self, db: AsyncSession, item_id: str) -> None:
        row = await self._get(db, item_id)
        logger.warning("deleting %s %s", self.item_key, item_id)
        try:
            await db.delete(row)
        except SQLAlchemyError as e:
            raise UpstreamError(message=str(e), context={"error_type": type(e).__name__})
        await self._flush(db, "delete")
