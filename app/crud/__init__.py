# app/crud/__init__.py

from .crud_attendance import attendance
from .crud_booking import booking_crud
from .crud_event import event
from .crud_payment import payment
