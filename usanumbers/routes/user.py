from flask import Blueprint, request
from flask_jwt_extended import jwt_required

from usanumbers.auth import ensure_self_or_admin
from usanumbers.errors import ValidationError
from usanumbers.responses import ok
from usanumbers.services import user_service

user_bp = Blueprint('user', __name__)


@user_bp.route('/<uid>', methods=['GET'])
@jwt_required()
def get_user_profile(uid):
    """
    Get user profile with the most recent purchases
    ---
    tags:
      - Users
    parameters:
      - in: path
        name: uid
        required: true
        type: string
    security:
      - Bearer: []
    responses:
      200:
        description: User profile
      403:
        description: Unauthorized to view this profile
      404:
        description: User not found
    """
    ensure_self_or_admin(uid)
    return ok(user_service.get_profile(uid))


@user_bp.route('/<uid>/numbers', methods=['GET'])
@jwt_required()
def get_user_numbers(uid):
    """
    List every number a user owns
    ---
    tags:
      - Users
    parameters:
      - in: path
        name: uid
        required: true
        type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Purchase snapshots, oldest first
      403:
        description: Unauthorized to view these numbers
      404:
        description: User not found
    """
    ensure_self_or_admin(uid)
    return ok(user_service.get_owned_numbers(uid))


@user_bp.route('/numbers/delete', methods=['POST'])
@jwt_required()
def delete_user_numbers():
    """
    Remove numbers from a user's owned list
    The numbers are not returned to the available pool.
    ---
    tags:
      - Users
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - userId
            - numbers
          properties:
            userId:
              type: string
            numbers:
              type: array
              items:
                type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Numbers removed
      404:
        description: User not found
    """
    data = request.get_json(silent=True) or {}
    user_id = data.get('userId')
    numbers = data.get('numbers')
    if not user_id or not numbers:
        raise ValidationError('Invalid request')
    ensure_self_or_admin(user_id)

    removed = user_service.remove_owned_numbers(user_id, numbers)
    return ok({'removed': removed}, 'Numbers deleted successfully')
