from dataclasses import dataclass

from sqlalchemy import func, select

from hub_auth.database import session_scope
from hub_auth.models.profile import Profile
from hub_auth.services.identifiers import normalize_email, phone_key

PHONE_SEPARATORS = (" ", "-", "(", ")", ".", "+")


@dataclass(frozen=True)
class ProfileMatch:
    id: str
    email: str | None
    phone: str | None


def _to_match(entry: Profile) -> ProfileMatch:
    return ProfileMatch(id=entry.id, email=entry.email, phone=entry.phone)


def _strip_phone_formatting(column):
    """SQL expression removing the separators stored numbers are written with.

    Candidates are still compared on their normalized key afterwards.
    """
    for separator in PHONE_SEPARATORS:
        column = func.replace(column, separator, "")
    return column


class ProfileDirectory:
    """Read-only lookups against the account directory.

    Lookups answer with a profile or ``None`` and nothing else, so callers
    cannot learn which field did or did not match.
    """

    def __init__(self, session_factory=None) -> None:
        self._session_factory = session_factory

    def find_profile_by_phone(self, phone: str) -> ProfileMatch | None:
        return self._match_phone(phone, excluding_profile_id=None)

    def find_conflicting_profile(
        self, phone: str, excluding_profile_id: str
    ) -> ProfileMatch | None:
        return self._match_phone(phone, excluding_profile_id=excluding_profile_id)

    def find_profile_by_email(self, email: str) -> ProfileMatch | None:
        key = normalize_email(email)
        if not key:
            return None
        with session_scope(self._session_factory) as session:
            entry = session.execute(
                select(Profile).where(func.lower(Profile.email) == key).limit(1)
            ).scalar_one_or_none()
            return _to_match(entry) if entry else None

    def _match_phone(
        self, phone: str, excluding_profile_id: str | None
    ) -> ProfileMatch | None:
        key = phone_key(phone)
        if len(key) != 10:
            return None
        statement = select(Profile).where(
            Profile.phone.is_not(None),
            _strip_phone_formatting(Profile.phone).like(f"%{key}"),
        )
        if excluding_profile_id is not None:
            statement = statement.where(Profile.id != excluding_profile_id)
        with session_scope(self._session_factory) as session:
            for entry in session.execute(statement.order_by(Profile.id)).scalars():
                if phone_key(entry.phone) == key:
                    return _to_match(entry)
        return None


profile_directory = ProfileDirectory()
