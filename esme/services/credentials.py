"""
Slack identity storage on users.
"""

from typing import Optional
import logging

from sqlalchemy.orm import Session

from ..models.user import User

logger = logging.getLogger(__name__)


def find_user_by_slack_id(db: Session, slack_user_id: Optional[str]) -> Optional[User]:
    if not slack_user_id:
        return None
    return db.query(User).filter(User.slack_user_id == slack_user_id).first()


def find_user_by_email(db: Session, email: Optional[str]) -> Optional[User]:
    if not email:
        return None
    return db.query(User).filter(User.email == email).first()


def upsert_slack_identity(
    db: Session,
    email: str,
    slack_user_id: str,
    slack_team_id: Optional[str],
    bot_token: str,
    name: Optional[str] = None
) -> User:
    """Create or update the user with this email and attach the Slack identity."""
    user = find_user_by_email(db, email)

    if user:
        user.slack_user_id = slack_user_id
        user.slack_team_id = slack_team_id
        user.slack_access_token = bot_token
        if name and not user.name:
            user.name = name
        logger.info(f"Updated Slack identity for {email}")
    else:
        user = User(
            email=email,
            name=name,
            slack_user_id=slack_user_id,
            slack_team_id=slack_team_id,
            slack_access_token=bot_token
        )
        db.add(user)
        logger.info(f"Created user {email} from Slack sign-in")

    db.commit()
    db.refresh(user)
    return user


def disconnect_slack(db: Session, user: User) -> User:
    """Clear the Slack fields only; Google credentials and conversations stay."""
    user.slack_access_token = None
    user.slack_user_id = None
    user.slack_team_id = None
    db.commit()
    logger.info(f"Disconnected Slack for user {user.id}")
    return user
