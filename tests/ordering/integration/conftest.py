import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.errors import install_exception_handlers
from ordering.api.routes import admin_router, cart_router, order_router


@pytest.fixture()
def client():
    app = FastAPI()
    install_exception_handlers(app)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(admin_router)
    return TestClient(app)


@pytest.fixture(autouse=True)
def products(catalogue):
    catalogue.add_product("prod-001", "Linen Shirt", 100, available_quantity=5, image="shirt.png")
    catalogue.add_product("prod-002", "Wool Socks", 10, available_quantity=1)
    catalogue.add_product("prod-off", "Retired Hat", 15, available_quantity=4, status="inactive")
    return catalogue
