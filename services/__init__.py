"""Service package exports.

This module re-exports service modules so callers can use
`from services import <service_name>` consistently across the
codebase (used by blueprints and tests).
"""

from . import errors
from . import rich_text
from . import resources
from . import engagement
from . import reporter_service
from . import program_service
from . import site_service
from . import user_service
from . import oauth
from . import metadata_service
from . import file_utils

__all__ = [
    'errors',
    'rich_text',
    'resources',
    'engagement',
    'reporter_service',
    'program_service',
    'site_service',
    'user_service',
    'oauth',
    'metadata_service',
    'file_utils',
]
