from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from usanumbers.auth import current_user_id, ensure_self
from usanumbers.errors import AuthenticationError, AuthorizationError, ValidationError
from usanumbers.responses import ok
from usanumbers.services import user_service

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/login', methods=['POST'])
@jwt_required()
def login():
    """
    Resolve the signed-in user's profile
    Credentials are verified by the identity provider; the bearer token
    must belong to the account behind the email.
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - email
          properties:
            email:
              type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Login successful
      401:
        description: User not found
      403:
        description: Token does not belong to this user
    """
    data = request.get_json(silent=True) or {}
    email = data.get('email')
    if not email or not isinstance(email, str):
        raise ValidationError('Email required')

    user = user_service.find_user_by_email(email)
    if not user:
        raise AuthenticationError('User not found')
    if user.uid != current_user_id():
        raise AuthorizationError()

    user_service.record_login(user)
    return ok(user.to_dict(), 'Login successful')


@auth_bp.route('/signup', methods=['POST'])
@jwt_required()
def signup():
    """
    Create the user record for a new identity
    ---
    tags:
      - Auth
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - uid
            - email
          properties:
            uid:
              type: string
            email:
              type: string
            fullName:
              type: string
    security:
      - Bearer: []
    responses:
      201:
        description: User created
      400:
        description: Missing or invalid fields
      409:
        description: User or email already exists
    """
    data = request.get_json(silent=True) or {}
    if not data.get('uid') or not data.get('email'):
        raise ValidationError('Missing required fields')
    uid = ensure_self(data['uid'])

    user = user_service.register_user(uid, data['email'], data.get('fullName'))
    return ok({'uid': user.uid, 'email': user.email}, 'User created successfully', 201)
