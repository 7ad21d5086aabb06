import logging
import math
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy import Select, bindparam, select
from sqlalchemy.sql.elements import BindParameter, ColumnElement

from .models import Product

logger = logging.getLogger(__name__)

# Plain decimal or exponent notation; no padding, underscores or inf/nan words
_PRICE_RE = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")

LIST_COLUMNS = (
    Product.id,
    Product.user_id,
    Product.product_name,
    Product.product_description,
    Product.product_images,
    Product.product_price,
)


def parse_price(raw: Optional[str]) -> Optional[float]:
    """
    Parse a price filter from a query string.

    Returns None for a missing, empty or non-numeric value; callers treat
    that as "no filter" rather than an error.
    """
    if raw is None or raw == "":
        return None
    if not _PRICE_RE.fullmatch(raw):
        logger.debug("Ignoring unparseable price filter %r", raw)
        return None
    value = float(raw)
    if not math.isfinite(value):
        logger.debug("Ignoring non-finite price filter %r", raw)
        return None
    return value


class ProductQuery:
    """
    Listing query for one user's products.

    Every filter clause is stored together with the value it binds, and each
    placeholder is named after the number of values bound before it (p1, p2,
    ...). Placeholders therefore always match the clauses actually present,
    whichever optional filters were given.
    """

    def __init__(self, user_id: str):
        self._filters: List[Tuple[ColumnElement[bool], BindParameter]] = []
        self._add(lambda p: Product.user_id == p, user_id)

    def _add(self, clause: Callable[[BindParameter], ColumnElement[bool]], value: Any) -> None:
        param = bindparam(f"p{len(self._filters) + 1}", value)
        self._filters.append((clause(param), param))

    def price_min(self, value: Optional[float]) -> "ProductQuery":
        if value is not None:
            self._add(lambda p: Product.product_price >= p, value)
        return self

    def price_max(self, value: Optional[float]) -> "ProductQuery":
        if value is not None:
            self._add(lambda p: Product.product_price <= p, value)
        return self

    def name_contains(self, value: Optional[str]) -> "ProductQuery":
        if value:
            self._add(lambda p: Product.product_name.ilike(p), f"%{value}%")
        return self

    @property
    def params(self) -> Dict[str, Any]:
        return {p.key: p.value for _, p in self._filters}

    def statement(self) -> Select:
        return (
            select(*LIST_COLUMNS)
            .where(*(clause for clause, _ in self._filters))
            .order_by(Product.id)
        )

    @classmethod
    def from_request(
        cls,
        user_id: str,
        price_min: Optional[str] = None,
        price_max: Optional[str] = None,
        product_name: Optional[str] = None,
    ) -> "ProductQuery":
        return (
            cls(user_id)
            .price_min(parse_price(price_min))
            .price_max(parse_price(price_max))
            .name_contains(product_name)
        )
