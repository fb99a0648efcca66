"""
Maps identities from the upstream auth layer to local users.

Authentication itself happens elsewhere; requests arrive with an opaque
external id, an email and optionally a display name.
"""

import logging
from datetime import datetime, timezone

from spread_pickem import db
from spread_pickem.models import User
from spread_pickem.utils.db_utils import commit_or_rollback, insert_or_fetch

logger = logging.getLogger(__name__)


class IdentityResolver:
    def get_or_create(self, external_id, email, display_name=None):
        """
        Return the local user for an external identity, creating it on first sight.

        Two first requests for the same identity can race; the loser picks up
        the row the winner inserted, so exactly one user exists either way.

        Returns:
            tuple: (user, created)
        """
        if not external_id:
            raise ValueError("external_id is required")

        user = self.get_by_external_id(external_id)
        if user:
            self.update_last_login(user)
            return user, False

        now = datetime.now(timezone.utc)

        def build():
            return User(
                external_id=external_id,
                email=email,
                display_name=display_name or email,
                last_login_at=now,
            )

        user, created = insert_or_fetch(build, lambda: self.get_by_external_id(external_id))
        if created:
            logger.info(f"Created user {user.id} for external identity {external_id}")
        else:
            logger.info(f"User for external identity {external_id} was created concurrently")
        return user, created

    def get_by_id(self, user_id):
        return db.session.get(User, user_id)

    def get_by_external_id(self, external_id):
        return User.query.filter_by(external_id=external_id).first()

    def update_last_login(self, user):
        user.last_login_at = datetime.now(timezone.utc)
        commit_or_rollback()
