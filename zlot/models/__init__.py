# ZLOT Parking — Database Models
# Import all models here for SQLAlchemy discovery

from zlot.models.device import Device                   # noqa
from zlot.models.parking_slot import ParkingSlot        # noqa
from zlot.models.booking import Booking                 # noqa
from zlot.models.parking_session import ParkingSession  # noqa
from zlot.models.payment import Payment                 # noqa
from zlot.models.command import Command                 # noqa
from zlot.models.scheduled_close import ScheduledClose  # noqa
from zlot.models.profile import Profile                 # noqa
