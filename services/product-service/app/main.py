import os
import sys
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .db import open_engine, make_session_factory
from .models import Product
from .query import ProductQuery
from .schemas import ProductCreate, ProductCreatedOut, ProductDetailOut, ProductOut

logger = logging.getLogger(__name__)

DETAIL_COLUMNS = (
    Product.user_id,
    Product.product_name,
    Product.product_description,
    Product.product_images,
    Product.compressed_product_images,
    Product.product_price,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Open the database handle once per process and share it with every request.
    Startup fails (and the server exits) if the store cannot be reached.
    Schema creation/migrations happen outside this service.
    """
    settings = Settings.from_env()
    engine = open_engine(settings)
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)
    try:
        yield
    finally:
        engine.dispose()
        logger.info("Database connection closed.")


app = FastAPI(title="product-service", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in prod
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_payload(request: Request, exc: RequestValidationError):
    logger.debug("Rejected %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"detail": "Invalid request payload"})


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


# A JSON null body counts as missing and is rejected with 400 like an empty one
@app.post("/products", response_model=ProductCreatedOut)
def create_product(payload: ProductCreate, db: Session = Depends(get_db)):
    p = Product(**payload.model_dump())
    try:
        db.add(p)
        db.flush()  # get p.id without reading the row back
        product_id = p.id
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error inserting product")
        raise HTTPException(status_code=500, detail="Failed to create product")

    return ProductCreatedOut(product_id=product_id)


@app.get("/products/{product_id}", response_model=ProductDetailOut)
def get_product(product_id: str, db: Session = Depends(get_db)):
    # The store coerces the identifier; a non-numeric id is a store error
    stmt = select(*DETAIL_COLUMNS).where(Product.id == product_id)
    try:
        row = db.execute(stmt).one_or_none()
        if row is None:
            raise HTTPException(status_code=404, detail="Product not found")
        return ProductDetailOut(**row._mapping)
    except (SQLAlchemyError, ValueError):
        logger.exception("Error retrieving product id=%s", product_id)
        raise HTTPException(status_code=500, detail="Failed to retrieve product")


@app.get("/products", response_model=List[ProductOut])
def list_products(
    user_id: str,
    price_min: Optional[str] = None,
    price_max: Optional[str] = None,
    product_name: Optional[str] = None,
    db: Session = Depends(get_db),
):
    # user_id is required here: a missing one is a 400 before any query runs
    query = ProductQuery.from_request(user_id, price_min, price_max, product_name)
    try:
        result = db.execute(query.statement())
    except SQLAlchemyError:
        logger.exception("Error retrieving products")
        raise HTTPException(status_code=500, detail="Failed to retrieve products")

    # Collect everything before responding; a bad row fails the whole request
    products: List[ProductOut] = []
    try:
        for row in result:
            products.append(ProductOut(**row._mapping))
    except (SQLAlchemyError, ValueError, TypeError):
        logger.exception("Error scanning product row")
        raise HTTPException(status_code=500, detail="Failed to parse product data")

    return products


@app.get("/health")
def health():
    return {"ok": True}


def run() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    try:
        settings = Settings.from_env()
    except (RuntimeError, ValueError) as e:
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)

    logger.info("Starting server on %s:%s...", settings.host, settings.port)
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        lifespan="on",  # startup failures must stop the process
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
