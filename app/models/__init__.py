# app/models/__init__.py
# Import all models to ensure SQLAlchemy can resolve relationships

from app.db.base_class import Base
from app.models.event import Event
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.attendance import Attendance
