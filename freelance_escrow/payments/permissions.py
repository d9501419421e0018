from rest_framework.permissions import BasePermission


class IsAdminRole(BasePermission):
    """Platform admins: staff, superusers, or accounts with the admin user_type."""
    message = 'Only admins can perform this action.'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin)


class IsTransactionParticipant(BasePermission):
    """The transaction's client or freelancer, or an admin."""
    message = 'Not authorised to access this transaction.'

    def has_object_permission(self, request, view, obj):
        user = request.user
        if user.is_admin:
            return True
        txn = getattr(obj, 'transaction', obj)
        return user.id in (txn.client_id, txn.freelancer_id)
