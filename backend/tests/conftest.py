import threading
import time
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import OperationalError, connections
from django.utils import timezone
from rest_framework.test import APIClient

from accounts.models import CustomUser, Wallet
from coupons.models import Coupon, CouponType
from market.models import Order, OrderLineItem, OrderType


@pytest.fixture
def user(db):
    return CustomUser.objects.create_user(username="payer", password="pass1234", role="user")


@pytest.fixture
def expert(db):
    return CustomUser.objects.create_user(username="astro", password="pass1234", role="expert")


@pytest.fixture
def api_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def make_wallet(db):
    def _make(owner, balance="0.00", real_ratio=0.0, currency="INR"):
        return Wallet.objects.create(user=owner, currency=currency, balance=Decimal(balance), real_ratio=real_ratio)
    return _make


@pytest.fixture
def make_coupon(db):
    def _make(code="SAVE50", **kwargs):
        now = timezone.now()
        fields = {
            "type": CouponType.FLAT,
            "discount": Decimal("50.00"),
            "start_date": now - timedelta(days=1),
            "end_date": now + timedelta(days=30),
        }
        fields.update(kwargs)
        return Coupon.objects.create(code=code, **fields)
    return _make


@pytest.fixture
def make_order(db):
    def _make(owner, amount, order_type=OrderType.ON_DEMAND_CONSULTATION, expert=None, items=(), **kwargs):
        order = Order.objects.create(
            user=owner,
            expert=expert,
            order_type=order_type,
            amount=Decimal(amount),
            **kwargs,
        )
        for item in items:
            OrderLineItem.objects.create(order=order, **item)
        return order
    return _make


@pytest.fixture
def run_in_threads():
    """
    Run fn(*args) for each args tuple on its own thread and connection, all released
    together by a barrier. Returns ("ok", value) or ("error", exc) per call, in order.
    A call that hits "database is locked" is retried from scratch.
    """
    def _run(fn, calls, attempts=5):
        barrier = threading.Barrier(len(calls))
        outcomes = [None] * len(calls)

        def worker(i, args):
            try:
                barrier.wait()
                for attempt in range(1, attempts + 1):
                    try:
                        outcomes[i] = ("ok", fn(*args))
                        break
                    except OperationalError:
                        if attempt == attempts:
                            raise
                        time.sleep(0.05 * attempt)
            except Exception as exc:
                outcomes[i] = ("error", exc)
            finally:
                connections.close_all()

        threads = [threading.Thread(target=worker, args=(i, args)) for i, args in enumerate(calls)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        return outcomes
    return _run
