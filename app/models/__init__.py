# Visitor Pass Management — Database Models
# Import all models here for SQLAlchemy discovery

from app.models.user import User                   # noqa
from app.models.visitor import Visitor             # noqa
from app.models.visitor_pass import Pass           # noqa
from app.models.check_log import CheckLog          # noqa
from app.models.appointment import Appointment     # noqa
