from pydantic import BaseModel, Field, ConfigDict, field_validator


def _images_or_empty(v):
    # NULL array columns come back as None
    return [] if v is None else v


class ProductCreate(BaseModel):
    # Missing fields fall back to zero values, unknown fields are ignored
    user_id: int = 0
    product_name: str = ""
    product_description: str = ""
    product_images: list[str] = Field(default_factory=list)
    product_price: float = 0.0


class ProductCreatedOut(BaseModel):
    message: str = "Product created successfully"
    product_id: int


class ProductDetailOut(BaseModel):
    user_id: int
    product_name: str
    product_description: str
    product_images: list[str]
    compressed_product_images: list[str]
    product_price: float

    model_config = ConfigDict(from_attributes=True)

    @field_validator("product_images", "compressed_product_images", mode="before")
    @classmethod
    def images_ok(cls, v):
        return _images_or_empty(v)


class ProductOut(BaseModel):
    id: int
    user_id: int
    product_name: str
    product_description: str
    product_images: list[str]
    product_price: float

    model_config = ConfigDict(from_attributes=True)

    @field_validator("product_images", mode="before")
    @classmethod
    def images_ok(cls, v):
        return _images_or_empty(v)
