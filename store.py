import logging
import os

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth import hash_password
from errors import ConflictError, StoreError
from models import Record, User

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_NAME = 'Admin'
DEFAULT_ADMIN_EMAIL = 'admin@example.com'
DEFAULT_ADMIN_PASSWORD = 'Admin@123'


def normalize_email(email):
    return (email or '').strip().lower()


class RecordStore:
    """Users and records on top of a Flask-SQLAlchemy handle.

    Every method must run inside an application context. Reads return plain
    values, writes commit immediately and roll back on failure. Database
    failures surface as ``StoreError`` (or ``ConflictError`` for a duplicate
    email) so callers never see SQLAlchemy exceptions.
    """

    def __init__(self, db, data_dir=None):
        self.db = db
        self.data_dir = data_dir

    # ---------------------- Lifecycle ----------------------
    def initialize(self, seed_admin=True):
        """Create the schema and seed the default admin when none exists.

        Returns the id of the seeded admin, or None when nothing was seeded.
        Errors propagate: a store that cannot initialize must stop startup.
        """
        if self.data_dir:
            os.makedirs(self.data_dir, exist_ok=True)
        self.db.create_all()
        if not seed_admin or self.count_admins() > 0:
            return None
        admin_id = self.insert_user(DEFAULT_ADMIN_NAME, DEFAULT_ADMIN_EMAIL,
                                    hash_password(DEFAULT_ADMIN_PASSWORD), is_admin=True)
        logger.warning('Seeded default admin: %s / %s (change this password)',
                       DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD)
        return admin_id

    def shutdown(self):
        self.db.session.remove()
        self.db.engine.dispose()

    # ---------------------- Users ----------------------
    def insert_user(self, name, email, password_hash, is_admin=False):
        user = User(name=name, email=normalize_email(email), password_hash=password_hash,
                    is_admin=bool(is_admin))
        try:
            self.db.session.add(user)
            self.db.session.commit()
        except IntegrityError as exc:
            self.db.session.rollback()
            if 'UNIQUE' in str(exc.orig).upper():
                raise ConflictError('Email already registered.') from exc
            raise StoreError() from exc
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            raise StoreError() from exc
        return user.id

    def find_user_by_email(self, email):
        try:
            return self.db.session.execute(
                select(User).where(User.email == normalize_email(email))
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError() from exc

    def count_admins(self):
        try:
            return self.db.session.execute(
                select(func.count(User.id)).where(User.is_admin.is_(True))
            ).scalar_one()
        except SQLAlchemyError as exc:
            raise StoreError() from exc

    def delete_user(self, user_id):
        # Bulk delete so the database-level cascade removes the records
        try:
            self.db.session.execute(delete(User).where(User.id == user_id))
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            raise StoreError() from exc

    # ---------------------- Records ----------------------
    def insert_record(self, user_id, input_value, output_value, remaining_value, note=None):
        record = Record(user_id=user_id, input_value=input_value, output_value=output_value,
                        remaining_value=remaining_value, note=note or None)
        try:
            self.db.session.add(record)
            self.db.session.commit()
        except SQLAlchemyError as exc:
            self.db.session.rollback()
            raise StoreError() from exc
        return record.id

    def list_records_for_user(self, user_id):
        try:
            return self.db.session.execute(
                select(Record)
                .where(Record.user_id == user_id)
                .order_by(Record.created_at.desc(), Record.id.desc())
            ).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreError() from exc

    def list_all_records_with_owner(self):
        stmt = (
            select(Record.id, User.name, User.email, Record.input_value, Record.output_value,
                   Record.remaining_value, Record.note, Record.created_at)
            .join(User, User.id == Record.user_id)
            .order_by(Record.created_at.desc(), Record.id.desc())
        )
        try:
            return [dict(row) for row in self.db.session.execute(stmt).mappings().all()]
        except SQLAlchemyError as exc:
            raise StoreError() from exc
