"""
Admin Routes
Every route except reading the bulk-buy settings requires the admin role.
"""

from flask import Blueprint, current_app, g, request

from usanumbers.auth import admin_required
from usanumbers.errors import ValidationError
from usanumbers.responses import ok
from usanumbers.services import (
    inventory_service,
    settings_service,
    stats_service,
    user_service,
)

admin_bp = Blueprint('admin', __name__)


def _body():
    return request.get_json(silent=True) or {}


def _limit(default):
    limit = request.args.get('limit', default, type=int)
    return limit if limit and limit > 0 else default


@admin_bp.route('/stats', methods=['GET'])
@admin_required
def stats():
    """
    Aggregate user, inventory and revenue counts
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Stats
      403:
        description: Caller is not an admin
    """
    return ok(stats_service.collect_stats())


@admin_bp.route('/users', methods=['GET'])
@admin_required
def list_users():
    """
    List users, newest first
    ---
    tags:
      - Admin
    parameters:
      - name: limit
        in: query
        type: integer
        default: 100
    security:
      - Bearer: []
    responses:
      200:
        description: User summaries with purchase counts
      403:
        description: Caller is not an admin
    """
    users = user_service.list_users(_limit(current_app.config['ADMIN_USERS_LIMIT']))
    return ok([u.to_summary() for u in users])


@admin_bp.route('/users/search', methods=['GET'])
@admin_required
def search_user():
    """
    Find a user by exact email
    ---
    tags:
      - Admin
    parameters:
      - name: email
        in: query
        type: string
        required: true
    security:
      - Bearer: []
    responses:
      200:
        description: Matching user
      404:
        description: User not found
    """
    user = user_service.search_user_by_email(request.args.get('email'))
    return ok(user.to_summary())


@admin_bp.route('/add-credit', methods=['POST'])
@admin_required
def add_credit():
    """
    Add credits to a user's balance
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - userId
            - amount
          properties:
            userId:
              type: string
            amount:
              type: number
            notes:
              type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Credit added
      400:
        description: Invalid amount
      404:
        description: User not found
    """
    data = _body()
    if not data.get('userId') or data.get('amount') is None:
        raise ValidationError('Invalid request')

    new_balance = user_service.add_credit(g.admin, data['userId'], data['amount'], data.get('notes'))
    return ok({'newBalance': float(new_balance)}, 'Credit added successfully')


@admin_bp.route('/numbers', methods=['GET'])
@admin_required
def list_numbers():
    """
    List inventory numbers, newest first
    ---
    tags:
      - Admin
    parameters:
      - name: filter
        in: query
        type: string
        enum: [all, available, sold]
        default: all
      - name: limit
        in: query
        type: integer
        default: 50
    security:
      - Bearer: []
    responses:
      200:
        description: Numbers
      400:
        description: Unknown filter
    """
    numbers = inventory_service.list_numbers(
        request.args.get('filter', 'all'),
        _limit(current_app.config['ADMIN_NUMBERS_LIMIT']),
    )
    return ok([n.to_dict() for n in numbers])


@admin_bp.route('/numbers/upload', methods=['POST'])
@admin_required
def upload_numbers():
    """
    Add numbers to the inventory
    Numbers whose phoneNumber already exists are skipped.
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - numbers
          properties:
            numbers:
              type: array
              items:
                type: object
                properties:
                  phoneNumber:
                    type: string
                  apiUrl:
                    type: string
            price:
              type: number
            type:
              type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Count of numbers added
    """
    data = _body()
    added, skipped = inventory_service.upload_numbers(
        g.admin,
        data.get('numbers'),
        price=data.get('price'),
        number_type=data.get('type'),
        default_price=current_app.config['DEFAULT_NUMBER_PRICE'],
    )
    return ok({'added': added, 'skipped': skipped}, f'Added {added} numbers')


@admin_bp.route('/numbers/delete', methods=['POST'])
@admin_required
def delete_numbers():
    """
    Delete numbers from the inventory
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - numberIds
          properties:
            numberIds:
              type: array
              items:
                type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Count of numbers deleted
      400:
        description: numberIds missing or not a list of ids
    """
    deleted = inventory_service.delete_numbers(_body().get('numberIds'))
    return ok({'deleted': deleted}, f'Deleted {deleted} numbers')


@admin_bp.route('/numbers/delete-sold', methods=['POST'])
@admin_required
def delete_sold_numbers():
    """
    Delete every sold number
    Ownership records and transactions are kept.
    ---
    tags:
      - Admin
    security:
      - Bearer: []
    responses:
      200:
        description: Count of numbers deleted
    """
    deleted = inventory_service.delete_sold_numbers()
    if not deleted:
        return ok({'deleted': 0}, 'No sold numbers found')
    return ok({'deleted': deleted}, f'Deleted {deleted} sold numbers')


@admin_bp.route('/numbers/update', methods=['POST'])
@admin_required
def update_number():
    """
    Update a number's listing fields
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - numberId
            - updates
          properties:
            numberId:
              type: string
            updates:
              type: object
              properties:
                phoneNumber:
                  type: string
                apiUrl:
                  type: string
                price:
                  type: number
                type:
                  type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Updated number
      400:
        description: Invalid or non-editable field
      404:
        description: Number not found
      409:
        description: Phone number already exists
    """
    data = _body()
    number = inventory_service.update_number(g.admin, data.get('numberId'), data.get('updates'))
    return ok(number.to_dict(), 'Number updated successfully')


@admin_bp.route('/users/update', methods=['POST'])
@admin_required
def update_user():
    """
    Update a user's profile fields
    Credits change only through add-credit and purchases.
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - userId
            - updates
          properties:
            userId:
              type: string
            updates:
              type: object
              properties:
                fullName:
                  type: string
                email:
                  type: string
                role:
                  type: string
                  enum: [user, admin]
                status:
                  type: string
    security:
      - Bearer: []
    responses:
      200:
        description: Updated user
      400:
        description: Invalid or non-editable field
      404:
        description: User not found
      409:
        description: Email already exists
    """
    data = _body()
    user = user_service.update_user(g.admin, data.get('userId'), data.get('updates'))
    return ok(user.to_dict(), 'User updated successfully')


@admin_bp.route('/users/delete', methods=['POST'])
@admin_required
def delete_user():
    """
    Delete a user
    Transactions are kept as historical record.
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - userId
          properties:
            userId:
              type: string
    security:
      - Bearer: []
    responses:
      200:
        description: User deleted
      404:
        description: User not found
    """
    user_service.delete_user(g.admin, _body().get('userId'))
    return ok(None, 'User deleted successfully')


@admin_bp.route('/settings/bulk-buy', methods=['GET'])
def get_bulk_buy_settings():
    """
    Get bulk-buy package pricing
    ---
    tags:
      - Admin
    responses:
      200:
        description: Stored settings, or the defaults when none are saved
    """
    return ok(settings_service.get_bulk_buy_settings())


@admin_bp.route('/settings/bulk-buy', methods=['POST'])
@admin_required
def save_bulk_buy_settings():
    """
    Save bulk-buy package pricing
    ---
    tags:
      - Admin
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - settings
          properties:
            settings:
              type: object
              properties:
                regularPrice:
                  type: number
                packages:
                  type: object
    security:
      - Bearer: []
    responses:
      200:
        description: Settings saved
      400:
        description: settings missing or malformed
    """
    settings_service.save_bulk_buy_settings(g.admin, _body().get('settings'))
    return ok(None, 'Settings saved successfully')
