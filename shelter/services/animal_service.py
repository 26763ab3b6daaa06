# Animal profile service module
import logging

from dateutil.parser import isoparse

from shelter import db
from shelter.errors import NotFound, ValidationError
from shelter.models import Animal
from shelter.tracking import get_tracking_client
from shelter.utils.util import remove_upload

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('name', 'age', 'breed', 'color', 'gender', 'species', 'description')
MAX_LENGTHS = {'name': 255, 'breed': 255, 'color': 255, 'gender': 50, 'species': 255}


def format_animal(animal):
    return {
        'id': animal.id,
        'name': animal.name,
        'age': animal.age,
        'breed': animal.breed,
        'species': animal.species,
        'birthdate': animal.birthdate.isoformat() if animal.birthdate else None,
        'color': animal.color,
        'gender': animal.gender,
        'description': animal.description,
        'image': animal.image,
        'medical_records': animal.medical_records,
        'is_adopted': animal.is_adopted,
        'is_temporarily_adopted': animal.is_temporarily_adopted,
        'device_id': animal.device_id,
        'traccar_id': animal.traccar_id,
    }


def _clean(data):
    errors = {}
    cleaned = {}
    for field in REQUIRED_FIELDS:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            errors[field] = 'This field is required'
        else:
            cleaned[field] = value.strip() if isinstance(value, str) else value
    for field, limit in MAX_LENGTHS.items():
        if field in cleaned and len(str(cleaned[field])) > limit:
            errors[field] = f'Must be at most {limit} characters'
    if 'age' in cleaned:
        try:
            cleaned['age'] = int(cleaned['age'])
            if cleaned['age'] < 0:
                errors['age'] = 'Must not be negative'
        except (TypeError, ValueError):
            errors['age'] = 'Must be a number'
    birthdate = data.get('birthdate')
    cleaned['birthdate'] = None
    if birthdate:
        try:
            cleaned['birthdate'] = isoparse(str(birthdate)).date()
        except ValueError:
            errors['birthdate'] = 'Invalid date format. Use ISO format (YYYY-MM-DD)'
    cleaned['medical_records'] = data.get('medical_records') or None
    if errors:
        raise ValidationError('Invalid animal profile', errors)
    return cleaned


def _device_id(data):
    return (data.get('unique_id') or '').strip() or None


def list_animals():
    return Animal.query.order_by(Animal.created_at.desc(), Animal.id.desc()).all()


def list_available():
    return (Animal.query
            .filter_by(is_adopted=False, is_temporarily_adopted=False)
            .order_by(Animal.created_at.desc(), Animal.id.desc())
            .all())


def get_animal(animal_id):
    animal = db.session.get(Animal, animal_id)
    if animal is None:
        raise NotFound('Animal profile not found')
    return animal


def create_animal(data, image_ref=None):
    """Create a profile, registering its tracking device first when one is given."""
    cleaned = _clean(data)
    device_id = _device_id(data)
    traccar_id = None
    if device_id:
        # Raises DependencyFailure before anything is written
        traccar_id = get_tracking_client().register_device(cleaned['name'], device_id)
    animal = Animal(
        image=image_ref,
        device_id=device_id,
        traccar_id=traccar_id,
        **cleaned
    )
    db.session.add(animal)
    db.session.commit()
    logger.info(f"Animal profile {animal.id} created (device {device_id or '-'})")
    return animal


def update_animal(animal_id, data, image_ref=None):
    animal = get_animal(animal_id)
    cleaned = _clean(data)
    device_id = _device_id(data)
    if device_id and device_id != animal.device_id:
        client = get_tracking_client()
        if animal.traccar_id:
            client.update_device(animal.traccar_id, cleaned['name'], device_id)
        else:
            animal.traccar_id = client.register_device(cleaned['name'], device_id)
    for field, value in cleaned.items():
        setattr(animal, field, value)
    animal.device_id = device_id
    old_image = None
    if image_ref:
        old_image, animal.image = animal.image, image_ref
    db.session.commit()
    remove_upload(old_image)
    logger.info(f"Animal profile {animal.id} updated")
    return animal


def delete_animal(animal_id):
    animal = get_animal(animal_id)
    image = animal.image
    db.session.delete(animal)
    db.session.commit()
    remove_upload(image)
    logger.info(f"Animal profile {animal_id} deleted")


def mark_as_adopted(animal_id):
    animal = get_animal(animal_id)
    animal.is_adopted = True
    animal.is_temporarily_adopted = False
    db.session.commit()
    return animal
