import os, sys
import logging
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from globetrotter.config import settings
from globetrotter.models.user import default_preferences
from globetrotter.services.auth_service import PasswordHasher
from globetrotter.services.firestore_service import FirestoreService

logger = logging.getLogger("ensure_admin")


def ensure_admin(fs: FirestoreService, hasher: PasswordHasher, email: str, password: str, name: str,
                 reset_password: bool = False) -> str:
    """
    Create the admin account, or bring an existing one back to role=admin and active.
    Returns "created", "normalized" or "unchanged".
    """
    email = email.strip().lower()
    user = fs.find_user_by_email(email)
    if not user:
        fs.create_user({
            "name": name,
            "email": email,
            "passwordHash": hasher.hash(password),
            "role": "admin",
            "isActive": True,
            "avatar": "",
            "preferences": default_preferences(),
            "savedDestinations": [],
            "refreshTokens": [],
            "passwordResetToken": None,
            "passwordResetExpires": None,
        })
        logger.info(f"Admin created: {email}")
        return "created"

    updates = {}
    if user.get("role") not in ("admin", "superadmin"):
        updates["role"] = "admin"
    if user.get("isActive") is not True:
        updates["isActive"] = True
    if reset_password:
        updates["passwordHash"] = hasher.hash(password)
    if updates:
        fs.update_user(user["id"], updates)
        logger.info(f"Admin normalized: {email} ({', '.join(sorted(updates))})")
        return "normalized"
    logger.info(f"Admin already exists: {email}")
    return "unchanged"


if __name__ == "__main__":
    from globetrotter.dependencies import get_firestore_client

    logging.basicConfig(level=logging.INFO)
    if len(settings.admin_password) < 8:
        logger.error("ADMIN_PASSWORD must be at least 8 characters")
        sys.exit(1)
    ensure_admin(
        FirestoreService(get_firestore_client()),
        PasswordHasher(settings.bcrypt_rounds),
        settings.admin_email,
        settings.admin_password,
        settings.admin_name,
        reset_password=settings.admin_reset,
    )
