from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash
from ..extensions import db, login_manager
from ..utils import utcnow

ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"


class User(db.Model, UserMixin):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(190), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(128), default="")
    phone = db.Column(db.String(32), default="")
    address = db.Column(db.String(255), default="")
    role = db.Column(db.String(16), default=ROLE_CUSTOMER)  # admin|customer
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "role": self.role,
        }


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))
