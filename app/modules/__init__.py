"""Domain modules package."""

from app.modules.audit import models as audit_models  # noqa: F401
from app.modules.booking import models as booking_models  # noqa: F401
from app.modules.catalog import models as catalog_models  # noqa: F401
from app.modules.notifications import models as notifications_models  # noqa: F401
from app.modules.policies import models as policies_models  # noqa: F401
from app.modules.scheduling import models as scheduling_models  # noqa: F401
