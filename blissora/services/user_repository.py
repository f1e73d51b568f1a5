# blissora/services/user_repository.py
from ..utils.text import normalize_email


class UserRepository:
    """Persistence seam for the auth code: lookups and writes of ``User`` rows."""

    def __init__(self, session, model):
        self.session = session
        self.model = model

    def find_by_email(self, email):
        email = normalize_email(email)
        if not email:
            return None
        return self.session.query(self.model).filter_by(email=email).first()

    def find_by_google_id(self, google_id):
        if not google_id:
            return None
        return self.session.query(self.model).filter_by(google_id=google_id).first()

    def add(self, user):
        self.session.add(user)
        self.session.commit()
        return user

    def save(self, user):
        self.session.add(user)
        self.session.commit()
        return user
