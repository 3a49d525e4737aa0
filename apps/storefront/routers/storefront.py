"""Storefront pages. Catalog and cart logic live in other services; these only answer."""
from fastapi import APIRouter, Form
from fastapi.responses import RedirectResponse

router = APIRouter()

CURRENCY_COOKIE_MAX_AGE = 60 * 60 * 48


@router.get("/")
def home():
    return {"page": "home"}


@router.get("/product/{id}")
def product(id: str):
    return {"page": "product", "product_id": id}


@router.get("/cart")
def view_cart():
    return {"page": "cart"}


@router.post("/cart")
def add_to_cart(product_id: str = Form(""), quantity: str = Form("1")):
    return {"status": "ok", "product_id": product_id, "quantity": quantity}


@router.post("/cart/empty")
def empty_cart():
    return RedirectResponse("/", status_code=302)


@router.post("/cart/checkout")
def place_order():
    return {"status": "ok", "page": "order"}


@router.post("/setCurrency")
def set_currency(currency_code: str = Form("")):
    resp = RedirectResponse("/", status_code=302)
    if currency_code:
        resp.set_cookie("currency", currency_code, max_age=CURRENCY_COOKIE_MAX_AGE)
    return resp
