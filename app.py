import os
import secrets
from datetime import datetime, timedelta, timezone
from functools import wraps

from flask import Blueprint, Flask, current_app, jsonify, request, session
from werkzeug.exceptions import HTTPException
from werkzeug.security import check_password_hash, generate_password_hash

from models import db, User
from finance import aggregator, goals, transactions
from finance.errors import AuthError, FinanceError, UnexpectedError, ValidationError

MIN_PASSWORD_LENGTH = 6
MAX_PHOTO_BYTES = 2 * 1024 * 1024

api = Blueprint('api', __name__, url_prefix='/api')


def _secret_key(app):
    secret = os.environ.get('SECRET_KEY')
    if secret:
        return secret
    if app.config['APP_ENV'] == 'production':
        raise RuntimeError('SECRET_KEY must be set when APP_ENV=production')
    app.logger.warning('SECRET_KEY is not set, using a generated key. Sessions will not survive a restart.')
    return secrets.token_hex(32)


def create_app(test_config=None):
    app = Flask(__name__)
    app.config['APP_ENV'] = os.environ.get('APP_ENV', 'development')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///finance.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['MAX_CONTENT_LENGTH'] = 10 * 1024 * 1024
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'
    app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(hours=24)
    if test_config:
        app.config.update(test_config)
    if not app.config.get('SECRET_KEY'):
        app.config['SECRET_KEY'] = _secret_key(app)

    db.init_app(app)
    with app.app_context():
        db.create_all()

    app.register_blueprint(api)
    _register_error_handlers(app)
    return app


def _register_error_handlers(app):
    @app.errorhandler(FinanceError)
    def handle_finance_error(error):
        return jsonify({'error': error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({'error': error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        db.session.rollback()
        app.logger.exception('Unhandled error on %s %s', request.method, request.path)
        return handle_finance_error(UnexpectedError('Internal server error'))


# ---------------------- Auth Helpers ----------------------
def current_user():
    uid = session.get('user_id')
    if uid:
        return db.session.get(User, uid)
    return None


def login_required(view_func):
    @wraps(view_func)
    def wrapped(*args, **kwargs):
        if not current_user():
            raise AuthError('Not authenticated')
        return view_func(*args, **kwargs)
    return wrapped


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def _login(user):
    session.clear()
    session.permanent = True
    session['user_id'] = user.id
    session['user_name'] = user.name


def _check_photo(photo):
    if not isinstance(photo, str) or not photo.startswith('data:image/'):
        raise ValidationError('Invalid image format')
    # decoded size of the base64 payload
    if len(photo) * 0.75 > MAX_PHOTO_BYTES:
        raise ValidationError('Image too large. Maximum 2MB')


# ---------------------- Routes: Auth ----------------------
@api.route('/hello')
def hello():
    return jsonify({
        'message': 'Hello! The API is up.',
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@api.route('/auth/register', methods=['POST'])
def register():
    data = _payload()
    name = str(data.get('name') or '').strip()
    email = str(data.get('email') or '').lower().strip()
    password = data.get('password') or ''
    photo = data.get('profilePhoto')

    if not name or not email or not password:
        raise ValidationError('All fields are required')
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f'Password must be at least {MIN_PASSWORD_LENGTH} characters')
    if photo:
        _check_photo(photo)
    if User.query.filter_by(email=email).first():
        raise ValidationError('Email already registered')

    user = User(
        name=name,
        email=email,
        password_hash=generate_password_hash(password),
        profile_photo=photo or None,
    )
    db.session.add(user)
    db.session.commit()
    _login(user)
    current_app.logger.info('Registered user %s', user.id)
    return jsonify({'message': 'User registered successfully!', 'user': user.summary()}), 201


@api.route('/auth/login', methods=['POST'])
def login():
    data = _payload()
    email = str(data.get('email') or '').lower().strip()
    password = data.get('password') or ''
    if not email or not password:
        raise ValidationError('Email and password are required')

    user = User.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, str(password)):
        current_app.logger.warning('Failed login for %s', email)
        raise AuthError('Invalid email or password')

    _login(user)
    current_app.logger.info('User %s logged in', user.id)
    return jsonify({'message': 'Logged in successfully!', 'user': user.summary()})


@api.route('/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'message': 'Logged out successfully!'})


@api.route('/auth/check')
def check():
    if 'user_id' in session:
        return jsonify({
            'authenticated': True,
            'userId': session['user_id'],
            'userName': session.get('user_name'),
        })
    return jsonify({'authenticated': False})


@api.route('/auth/me')
@login_required
def me():
    return jsonify({'user': current_user().to_dict()})


# ---------------------- Routes: Transactions ----------------------
@api.route('/transactions', methods=['POST'])
@login_required
def create_transaction():
    tx = transactions.create_transaction(session['user_id'], _payload())
    return jsonify({'message': 'Transaction created successfully!', 'transaction': tx.to_dict()}), 201


@api.route('/transactions', methods=['GET'])
@login_required
def list_transactions():
    rows = transactions.list_transactions(
        session['user_id'],
        ttype=request.args.get('type'),
        start=request.args.get('startDate'),
        end=request.args.get('endDate'),
    )
    return jsonify({'transactions': [tx.to_dict() for tx in rows]})


@api.route('/transactions/summary/stats')
@login_required
def transaction_summary():
    return jsonify(aggregator.summary(session['user_id']))


@api.route('/transactions/chart/monthly')
@login_required
def monthly_chart():
    return jsonify({'months': aggregator.monthly_chart(session['user_id'])})


@api.route('/transactions/<txn_id>', methods=['GET'])
@login_required
def get_transaction(txn_id):
    tx = transactions.get_transaction(session['user_id'], txn_id)
    return jsonify({'transaction': tx.to_dict()})


@api.route('/transactions/<txn_id>', methods=['PUT'])
@login_required
def update_transaction(txn_id):
    tx = transactions.update_transaction(session['user_id'], txn_id, _payload())
    return jsonify({'message': 'Transaction updated successfully!', 'transaction': tx.to_dict()})


@api.route('/transactions/<txn_id>', methods=['DELETE'])
@login_required
def delete_transaction(txn_id):
    transactions.delete_transaction(session['user_id'], txn_id)
    return jsonify({'message': 'Transaction deleted successfully!'})


# ---------------------- Routes: Goals ----------------------
@api.route('/goals', methods=['POST'])
@login_required
def create_goal():
    goal = goals.create_goal(session['user_id'], _payload())
    return jsonify({'message': 'Goal created successfully!', 'goal': goal.to_dict()}), 201


@api.route('/goals', methods=['GET'])
@login_required
def list_goals():
    rows = goals.list_goals(session['user_id'], status=request.args.get('status'))
    return jsonify({'goals': [g.to_dict() for g in rows]})


@api.route('/goals/recent')
@login_required
def recent_goals():
    limit = request.args.get('limit', default=2, type=int)
    if limit is None or limit < 1:
        limit = 2
    rows = goals.recent_goals(session['user_id'], limit=limit)
    return jsonify({'goals': [g.to_dict() for g in rows]})


@api.route('/goals/<goal_id>', methods=['GET'])
@login_required
def get_goal(goal_id):
    goal = goals.get_goal(session['user_id'], goal_id)
    return jsonify({'goal': goal.to_dict()})


@api.route('/goals/<goal_id>', methods=['PUT'])
@login_required
def update_goal(goal_id):
    goal = goals.update_goal(session['user_id'], goal_id, _payload())
    return jsonify({'message': 'Goal updated successfully!', 'goal': goal.to_dict()})


@api.route('/goals/<goal_id>/amount', methods=['PUT'])
@login_required
def update_goal_amount(goal_id):
    goal, completed = goals.update_progress(session['user_id'], goal_id, _payload().get('amount'))
    message = 'Goal completed! Congratulations!' if completed else 'Progress updated successfully!'
    return jsonify({'message': message, 'completed': completed, 'goal': goal.to_dict()})


@api.route('/goals/<goal_id>', methods=['DELETE'])
@login_required
def delete_goal(goal_id):
    goals.delete_goal(session['user_id'], goal_id)
    return jsonify({'message': 'Goal deleted successfully!'})


# ---------------------- Run App ----------------------
if __name__ == '__main__':
    create_app().run(host='0.0.0.0', port=int(os.environ.get('PORT', 5000)), debug=True)
