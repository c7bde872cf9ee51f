"""Signup and user administration endpoints"""

import functools
import hmac
from flask import request
from flask_restx import Namespace, Resource, fields
import structlog

from propviz.config.settings import settings
from propviz.services.user_directory import UserDirectory
from propviz.utils.exceptions import ValidationError, AuthenticationError

logger = structlog.get_logger(__name__)

signup_ns = Namespace("signup", description="User signup")
admin_ns = Namespace("admin", description="User administration")

signup_model = signup_ns.model("Signup", {
    "userId": fields.String(required=True, description="Auth user id"),
    "email": fields.String(required=True, description="E-mail address"),
    "name": fields.String(required=True, description="Display name")
})

user_model = admin_ns.model("User", {
    "id": fields.String(description="User id"),
    "email": fields.String(description="E-mail address"),
    "name": fields.String(description="Display name"),
    "approved": fields.Boolean(description="Approved by an admin"),
    "is_admin": fields.Boolean(description="Has admin rights"),
    "created_at": fields.String(description="Creation timestamp")
})

def require_admin(func):
    """Check the X-Admin-Key header when an admin key is configured"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if settings.ADMIN_API_KEY:
            supplied = request.headers.get("X-Admin-Key", "")
            if not hmac.compare_digest(supplied, settings.ADMIN_API_KEY):
                logger.warning("Rejected admin request", path=request.path)
                raise AuthenticationError("Admin key required")
        return func(*args, **kwargs)
    return wrapper

@signup_ns.route("")
class Signup(Resource):
    """Create the user record for a new account"""

    @signup_ns.doc("signup")
    @signup_ns.expect(signup_model)
    def post(self):
        """Create an unapproved user record"""
        data = request.get_json(silent=True) or {}

        user_id = data.get("userId")
        email = data.get("email")
        name = data.get("name")

        if not user_id or not email or not name:
            raise ValidationError("Missing required fields")

        with UserDirectory() as directory:
            directory.create_user(user_id, email, name)
        return {"success": True}

@admin_ns.route("/users")
class UserList(Resource):
    """All users"""

    method_decorators = [require_admin]

    @admin_ns.doc("list_users")
    @admin_ns.marshal_list_with(user_model)
    def get(self):
        """List users, newest first"""
        with UserDirectory() as directory:
            return directory.list_users()

@admin_ns.route("/users/<string:user_id>")
@admin_ns.param("user_id", "User id")
class UserItem(Resource):
    """A single user"""

    method_decorators = [require_admin]

    @admin_ns.doc("delete_user")
    def delete(self, user_id):
        """Delete a user record"""
        with UserDirectory() as directory:
            directory.delete_user(user_id)
        return {"success": True}

@admin_ns.route("/approve/<string:user_id>")
@admin_ns.param("user_id", "User id")
class ApproveUser(Resource):
    """Approve a pending user"""

    method_decorators = [require_admin]

    @admin_ns.doc("approve_user")
    def post(self, user_id):
        """Confirm the user's e-mail and mark them approved"""
        with UserDirectory() as directory:
            user = directory.approve_user(user_id)
        return {"success": True, "user": user}
