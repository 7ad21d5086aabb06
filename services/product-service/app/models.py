from sqlalchemy import Text, Float, JSON
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column
from .db import Base

# Native text[] on Postgres; JSON keeps the same list shape on SQLite (tests)
ImageList = ARRAY(Text).with_variant(JSON(), "sqlite")


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(index=True)

    product_name: Mapped[str] = mapped_column(Text)

    product_description: Mapped[str] = mapped_column(Text)

    product_images: Mapped[list[str]] = mapped_column(ImageList)

    # Filled in by the external compression pipeline, never written here
    compressed_product_images: Mapped[list[str] | None] = mapped_column(
        ImageList,
        nullable=True
    )

    product_price: Mapped[float] = mapped_column(Float)
