# saas_starter/models/__init__.py
from saas_starter.db.base import Base  # noqa: F401

from . import user            # noqa: F401
from . import team            # noqa: F401
from . import team_member     # noqa: F401
from . import invitation      # noqa: F401
from . import activity_log    # noqa: F401
