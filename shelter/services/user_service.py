# User profile and presence service module
import logging
import re
from datetime import datetime

from shelter import db
from shelter.errors import NotFound, ValidationError
from shelter.models import User
from shelter.utils.util import remove_upload

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r'^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$')
PHONE_REGEX = re.compile(r'^\d{11}$')
GENDERS = ('male', 'female', 'other')


def format_user(user):
    return {
        'id': user.id,
        'name': user.name,
        'last_name': user.last_name,
        'email': user.email,
        'role': user.role.value,
        'address': user.address,
        'phone_number': user.phone_number,
        'age': user.age,
        'gender': user.gender,
        'civil_status': user.civil_status,
        'profile_photo': user.profile_photo,
        'missing_profile_fields': user.missing_profile_fields(),
    }


def touch_activity(user_id, now=None):
    """Record that the user was just active; drives the chat online flag."""
    User.query.filter_by(id=user_id).update({User.last_activity_at: now or datetime.utcnow()},
                                            synchronize_session=False)
    db.session.commit()


def get_user(user_id):
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound('User not found')
    return user


def update_profile(user_id, data, photo_ref=None):
    user = get_user(user_id)
    errors = {}

    name = (data.get('name') or '').strip()
    if not name:
        errors['name'] = 'This field is required'
    elif len(name) > 255:
        errors['name'] = 'Must be at most 255 characters'

    email = (data.get('email') or '').strip()
    if not email:
        errors['email'] = 'This field is required'
    elif not EMAIL_REGEX.match(email):
        errors['email'] = 'Invalid email format'
    elif User.query.filter(User.email == email, User.id != user.id).first():
        errors['email'] = 'Email already taken'

    age = data.get('age')
    if age not in (None, ''):
        try:
            age = int(age)
            if age < 0:
                errors['age'] = 'Must not be negative'
        except (TypeError, ValueError):
            errors['age'] = 'Must be a number'
    else:
        age = None

    gender = (data.get('gender') or '').strip().lower() or None
    if gender and gender not in GENDERS:
        errors['gender'] = f"Must be one of: {', '.join(GENDERS)}"

    phone_number = (data.get('phone_number') or '').strip() or None
    if phone_number and not PHONE_REGEX.match(phone_number):
        errors['phone_number'] = 'Must be exactly 11 digits'

    civil_status = (data.get('civil_status') or '').strip() or None
    if civil_status and len(civil_status) > 50:
        errors['civil_status'] = 'Must be at most 50 characters'

    address = (data.get('address') or '').strip() or None
    if address and len(address) > 255:
        errors['address'] = 'Must be at most 255 characters'

    if errors:
        raise ValidationError('Invalid profile', errors)

    user.name = name
    user.last_name = (data.get('last_name') or '').strip() or user.last_name
    user.email = email
    user.age = age
    user.gender = gender
    user.phone_number = phone_number
    user.civil_status = civil_status
    user.address = address
    old_photo = None
    if photo_ref:
        old_photo, user.profile_photo = user.profile_photo, photo_ref
    db.session.commit()
    remove_upload(old_photo)
    logger.info(f"Profile of user {user.id} updated")
    return user
