import logging
import math
import os
import sys
from datetime import timedelta

from cachelib import FileSystemCache
from flask import (Blueprint, Flask, current_app, flash, redirect, render_template, request,
                   url_for)
from flask_session import Session

from auth import (ADMIN, USER, authenticate, current_user, hash_password, home_for, login_user,
                  logout_user, role_required)
from errors import ConflictError, InvalidCredentials, RegistrationFailed, StoreError, ValidationError
from models import db
from reports.exporter import EXPORT_FILENAME, XLSX_MIMETYPE, build_workbook
from store import RecordStore, normalize_email

DEFAULT_SECRET = 'please-change-this-secret'
SESSION_LIFETIME = timedelta(hours=8)

bp = Blueprint('tracker', __name__)


def create_app(test_config=None):
    app = Flask(__name__, template_folder='templates', static_folder='static')
    app.config.from_mapping(
        SECRET_KEY=os.environ.get('SESSION_SECRET', DEFAULT_SECRET),
        DATA_DIR=os.environ.get('DATA_DIR', os.path.join(app.root_path, 'data')),
        SEED_DEFAULT_ADMIN=os.environ.get('SEED_DEFAULT_ADMIN', '1').lower() not in ('0', 'false', 'no'),
        PORT=int(os.environ.get('PORT', 3000)),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SESSION_TYPE='cachelib',
        SESSION_PERMANENT=True,
        SESSION_REFRESH_EACH_REQUEST=False,
        PERMANENT_SESSION_LIFETIME=SESSION_LIFETIME,
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE='Lax',
    )
    if test_config:
        app.config.update(test_config)

    data_dir = os.path.abspath(app.config['DATA_DIR'])
    app.config['DATA_DIR'] = data_dir
    app.config.setdefault('SQLALCHEMY_DATABASE_URI',
                          'sqlite:///' + os.path.join(data_dir, 'database.sqlite'))
    app.config.setdefault('SESSION_CACHELIB',
                          FileSystemCache(cache_dir=os.path.join(data_dir, 'sessions'), threshold=500))

    if app.config['SECRET_KEY'] == DEFAULT_SECRET:
        app.logger.warning('SESSION_SECRET is not set; using the built-in development secret')

    db.init_app(app)
    Session(app)

    store = RecordStore(db, data_dir=data_dir)
    app.extensions['record_store'] = store
    with app.app_context():
        store.initialize(seed_admin=app.config['SEED_DEFAULT_ADMIN'])
    app.logger.info('SQLite DB ready at %s', app.config['SQLALCHEMY_DATABASE_URI'])

    app.register_blueprint(bp)
    app.after_request(_security_headers)
    return app


def get_store() -> RecordStore:
    return current_app.extensions['record_store']


def _security_headers(response):
    response.headers.setdefault('X-Content-Type-Options', 'nosniff')
    response.headers.setdefault('X-Frame-Options', 'SAMEORIGIN')
    response.headers.setdefault('Referrer-Policy', 'no-referrer')
    return response


# ---------------------- Record Service ----------------------
def parse_amount(raw) -> float:
    text = (raw or '').strip()
    try:
        value = float(text)
    except (TypeError, ValueError):
        raise ValidationError('Please enter valid numbers.')
    if '_' in text or not math.isfinite(value):
        raise ValidationError('Please enter valid numbers.')
    return value


def submit_record(store, user_id, input_raw, output_raw, note=None):
    """Validate and store one record; returns the new record id."""
    input_value = parse_amount(input_raw)
    output_value = parse_amount(output_raw)
    remaining = input_value - output_value
    return store.insert_record(user_id, input_value, output_value, remaining, (note or '').strip() or None)


def list_own(store, user_id):
    try:
        return store.list_records_for_user(user_id)
    except StoreError:
        current_app.logger.exception('Could not load records for user %s', user_id)
        return []


def list_all(store):
    try:
        return store.list_all_records_with_owner()
    except StoreError:
        current_app.logger.exception('Could not load records for the admin view')
        return []


# ---------------------- Routes: Auth ----------------------
@bp.route('/')
def index():
    return redirect(home_for(current_user()))


@bp.route('/register', methods=['GET', 'POST'])
def register():
    if request.method == 'POST':
        name = request.form.get('name', '').strip()
        email = normalize_email(request.form.get('email'))
        password = request.form.get('password', '')
        form = {'name': name, 'email': email}
        if not name or not email or not password:
            return render_template('register.html', error='All fields are required.', form=form), 400
        try:
            get_store().insert_user(name, email, hash_password(password), is_admin=False)
        except ConflictError as e:
            return render_template('register.html', error=e.message, form=form), 400
        except StoreError:
            current_app.logger.exception('Registration failed for %s', email)
            return render_template('register.html', error=RegistrationFailed().message, form=form), 400
        flash('Registration successful. Please log in.', 'success')
        return redirect(url_for('tracker.login'))
    return render_template('register.html', error=None, form={})


@bp.route('/login', methods=['GET', 'POST'])
def login():
    if request.method == 'POST':
        email = normalize_email(request.form.get('email'))
        password = request.form.get('password', '')
        if not email or not password:
            return render_template('login.html', error='Email and password required.', email=email), 400
        try:
            identity = authenticate(get_store(), email, password)
        except InvalidCredentials as e:
            current_app.logger.info('Failed login for %s', email)
            return render_template('login.html', error=e.message, email=email), 401
        except StoreError:
            current_app.logger.exception('Login lookup failed')
            return render_template('login.html', error='Server error.', email=email), 500
        login_user(identity)
        return redirect(home_for(identity))
    return render_template('login.html', error=None, email='')


@bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return redirect(url_for('tracker.login'))


# ---------------------- Routes: User ----------------------
@bp.route('/dashboard')
@role_required(USER)
def dashboard():
    user = current_user()
    return render_template('user_dashboard.html', user=user, records=list_own(get_store(), user['id']),
                           error=None, form={})


@bp.route('/records', methods=['POST'])
@role_required(USER)
def create_record():
    user = current_user()
    store = get_store()
    try:
        submit_record(store, user['id'], request.form.get('input_value'),
                      request.form.get('output_value'), request.form.get('note'))
    except ValidationError as e:
        return render_template('user_dashboard.html', user=user, records=list_own(store, user['id']),
                               error=e.message, form=request.form), 400
    except StoreError:
        current_app.logger.exception('Could not save record for user %s', user['id'])
        flash('Could not save the record. Please try again.', 'error')
    return redirect(url_for('tracker.dashboard'))


# ---------------------- Routes: Admin ----------------------
@bp.route('/admin')
@role_required(ADMIN)
def admin_dashboard():
    return render_template('admin_dashboard.html', user=current_user(), rows=list_all(get_store()))


@bp.route('/admin/export')
@role_required(ADMIN)
def admin_export():
    output = build_workbook(list_all(get_store()))
    return (output, 200, {'Content-Type': XLSX_MIMETYPE,
                          'Content-Disposition': f'attachment; filename="{EXPORT_FILENAME}"'})


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    app = create_app()
    app.run(host='0.0.0.0', port=app.config['PORT'])
