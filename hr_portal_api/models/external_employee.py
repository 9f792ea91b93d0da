# hr_portal_api/models/external_employee.py
from sqlalchemy.sql import func

from hr_portal_api.extensions import db


class ExternalEmployee(db.Model):
    """
    A user enrolled on the biometric device, mirrored from the upstream users feed.
    `pin_auto` is the device-assigned id that punches carry as `user_id`.
    """

    __tablename__ = "external_employees"

    id = db.Column(db.Integer, primary_key=True)
    pin_auto = db.Column(db.String(64), unique=True, nullable=False)
    pin_manual = db.Column(db.String(64))
    user_name = db.Column(db.String(255))
    privilege = db.Column(db.String(32))
    created_at = db.Column(db.DateTime, server_default=func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, server_default=func.now(), onupdate=func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "pin_auto": self.pin_auto,
            "pin_manual": self.pin_manual,
            "user_name": self.user_name,
            "privilege": self.privilege,
        }
