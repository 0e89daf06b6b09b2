from .auth import router as auth_router
from .health import router as health_router
from .profiles import router as profiles_router
from .setup import router as setup_router
from .staff import router as staff_router
from .users import router as users_router
