from .profile import Profile  # noqa: F401
from .venue import Court, Venue  # noqa: F401
from .booking import Booking  # noqa: F401
from .subscription import Subscription  # noqa: F401
from .payment import Payment  # noqa: F401
