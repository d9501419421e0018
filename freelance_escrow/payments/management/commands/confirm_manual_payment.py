from django.core.management.base import BaseCommand, CommandError
from django.contrib.auth import get_user_model
from rest_framework.exceptions import APIException

from escrow.services import EscrowService

User = get_user_model()


class Command(BaseCommand):
    help = "Confirms an offline (bank transfer / e-Dinar) payment and moves its funds into escrow."

    def add_arguments(self, parser):
        parser.add_argument('transaction_id', type=str, help='UUID of the pending transaction')
        parser.add_argument('--admin-email', type=str, required=True, help='Email of the admin confirming the payment')
        parser.add_argument('--reference', type=str, help='Bank or e-Dinar reference of the received payment')

    def handle(self, *args, **options):
        email = options['admin_email']
        try:
            admin = User.objects.get(email=email)
        except User.DoesNotExist:
            raise CommandError(f"User with email {email} does not exist.")

        try:
            txn = EscrowService().confirm_manual_payment(
                user=admin,
                transaction_id=options['transaction_id'],
                reference=options.get('reference'),
            )
        except APIException as e:
            raise CommandError(str(e.detail))

        self.stdout.write(self.style.SUCCESS(
            f"Transaction {txn.pk} escrowed with reference {txn.payment_gateway_reference}."
        ))
