from .user_model import User, Role, STAFF_ROLES
from .animal_model import Animal
from .adoption_model import (AdoptionRequest, AdoptionAppointment, ReviewStatus, AppointmentStatus,
                             ACTIVE_APPOINTMENT_STATUSES)
from .abuse_model import AbuseReport, DEFAULT_ABUSE_IMAGE
from .chat_model import Message
from .notification_model import Notification
