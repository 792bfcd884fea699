from functools import wraps
from flask import jsonify
from flask_login import current_user

def roles_required(*roles):
  """Allow the view only for signed-in users whose role is in roles.

  Answers 401 for anonymous requests and 403 for other roles; the SPA decides
  where to send the user.
  """
  def wrapper(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
      # Require authentication
      if not current_user.is_authenticated:
        return jsonify({'error': 'Authentication required'}), 401

      # Role check (roles passed should match stored role strings)
      if roles and current_user.role not in roles:
        return jsonify({'error': 'Forbidden'}), 403
      return f(*args, **kwargs)
    return decorated_function
  return wrapper

#Convenience Decorators for clarity
# Use canonical lower-case role strings throughout the app
admin_required = roles_required('admin')
login_required_json = roles_required()
