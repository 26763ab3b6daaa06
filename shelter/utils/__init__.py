from .auth_middleware import Principal, current_principal, token_required, setup_auth_middleware
from .util import role_required, save_upload, remove_upload
