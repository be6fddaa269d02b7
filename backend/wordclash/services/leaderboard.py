"""Win counts for signed-in players.

``schedule_win`` is what the turn engine calls when an authenticated player
wins: it hands the database write to a background task so a slow or broken
database never holds up the room.
"""

from datetime import datetime, timezone

from wordclash import db, socketio
from wordclash.models import User


def record_win(app, user_id: int) -> bool:
    """Increment ``user_id``'s win count. Never raises."""
    with app.app_context():
        try:
            user = db.session.get(User, user_id)
            if user is None:
                app.logger.warning(f"[leaderboard] no user id={user_id}; win not recorded")
                return False
            user.wins = (user.wins or 0) + 1
            user.last_win_at = datetime.now(timezone.utc)
            db.session.add(user)
            db.session.commit()
            app.logger.info(f"[leaderboard] user={user.username} wins={user.wins}")
            return True
        except Exception:
            db.session.rollback()
            app.logger.exception(f"[leaderboard] failed to record win for user id={user_id}")
            return False


def schedule_win(app, player) -> None:
    user_id = player.identity.external_user_id
    if app.config.get('TESTING') and not app.config.get('ENABLE_SCHEDULER_IN_TESTS'):
        record_win(app, user_id)
        return
    socketio.start_background_task(record_win, app, user_id)


def top_players(limit: int = 10) -> list:
    users = (
        User.query.filter(User.wins > 0)
        .order_by(User.wins.desc(), User.last_win_at.asc())
        .limit(limit)
        .all()
    )
    return [u.to_leaderboard_dict() for u in users]


def wins_for(username: str):
    user = User.query.filter_by(username=username).first()
    return user.to_leaderboard_dict() if user else None
