# shelter/routes/__init__.py
from .animal_routes import animal_ns
from .adoption_routes import adoption_ns
from .appointment_routes import appointment_ns
from .abuse_routes import abuse_ns
from .notification_routes import notification_ns
from .chat_routes import chat_ns
from .profile_routes import profile_ns
from .dashboard_routes import dashboard_ns


def register_namespaces(api):
    api.add_namespace(animal_ns)
    api.add_namespace(adoption_ns)
    api.add_namespace(appointment_ns)
    api.add_namespace(abuse_ns)
    api.add_namespace(notification_ns)
    api.add_namespace(chat_ns)
    api.add_namespace(profile_ns)
    api.add_namespace(dashboard_ns)
