"""
Number Routes
Public catalogue plus the two purchase entry points.
"""

from flask import Blueprint, current_app, request
from flask_jwt_extended import jwt_required

from usanumbers.auth import ensure_self
from usanumbers.errors import ValidationError
from usanumbers.responses import ok
from usanumbers.services import inventory_service, purchase_service

numbers_bp = Blueprint('numbers', __name__)


def _limit(default):
    limit = request.args.get('limit', default, type=int)
    return limit if limit and limit > 0 else default


@numbers_bp.route('/available', methods=['GET'])
def list_available():
    """
    List numbers that can be bought
    ---
    tags:
      - Numbers
    parameters:
      - name: limit
        in: query
        type: integer
        default: 50
    responses:
      200:
        description: Available numbers, newest first
    """
    numbers = inventory_service.list_available_numbers(
        _limit(current_app.config['AVAILABLE_NUMBERS_LIMIT'])
    )
    return ok([n.to_dict() for n in numbers])


@numbers_bp.route('/buy', methods=['POST'])
@jwt_required()
def buy_number():
    """
    Buy a single number
    ---
    tags:
      - Numbers
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - numberId
          properties:
            userId:
              type: string
            numberId:
              type: string
            price:
              type: number
    security:
      - Bearer: []
    responses:
      200:
        description: Purchase successful
      402:
        description: Insufficient credits
      404:
        description: User or number not found
      409:
        description: Number is not available
    """
    data = request.get_json(silent=True) or {}
    user_id = ensure_self(data.get('userId'))
    if not data.get('numberId'):
        raise ValidationError('Missing required fields')

    result = purchase_service.purchase_single(user_id, data['numberId'], data.get('price'))
    return ok(result.to_dict(), 'Purchase successful')


@numbers_bp.route('/bulk-buy', methods=['POST'])
@jwt_required()
def bulk_buy():
    """
    Buy several numbers at an aggregate price
    The whole batch succeeds or fails together.
    ---
    tags:
      - Numbers
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - quantity
            - totalPrice
            - numbers
          properties:
            userId:
              type: string
            quantity:
              type: integer
            totalPrice:
              type: number
            numbers:
              type: array
              description: Number ids, or objects carrying an id
              items:
                type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Bulk purchase successful
      402:
        description: Insufficient credits
      409:
        description: One or more numbers are not available
    """
    data = request.get_json(silent=True) or {}
    user_id = ensure_self(data.get('userId'))
    numbers = data.get('numbers')
    if not numbers or not isinstance(numbers, list) or not data.get('quantity') or not data.get('totalPrice'):
        raise ValidationError('Missing required fields')

    quantity = data['quantity']
    if isinstance(quantity, str) and quantity.isdigit():
        quantity = int(quantity)
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError('Invalid quantity')

    result = purchase_service.purchase_bulk(user_id, numbers, data['totalPrice'], quantity)
    return ok(result.to_dict(), 'Bulk purchase successful')
