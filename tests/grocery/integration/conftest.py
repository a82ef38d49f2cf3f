import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from grocery.api import (
    maintenance_router,
    order_router,
    product_router,
    register_fulfillment_error_handlers,
    vendor_router,
    worker_router,
)
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (vendor_router, product_router, worker_router, order_router, maintenance_router):
        app.include_router(router)
    register_exception_handlers(app)
    register_fulfillment_error_handlers(app)
    return TestClient(app)
