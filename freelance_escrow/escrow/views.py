from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import generics, permissions
from drf_yasg.utils import swagger_auto_schema

from payments.permissions import IsTransactionParticipant
from .models import EscrowLedger
from .serializers import EscrowLedgerSerializer


class EscrowLedgerListView(generics.ListAPIView):
	"""List escrow ledgers relevant to the authenticated user."""

	serializer_class = EscrowLedgerSerializer
	permission_classes = [permissions.IsAuthenticated]
	filterset_fields = ["status"]

	@swagger_auto_schema(
		operation_summary="List escrow ledgers for the current user",
		responses={200: EscrowLedgerSerializer(many=True)}
	)
	def get(self, request, *args, **kwargs):
		return super().get(request, *args, **kwargs)

	def get_queryset(self):
		user = self.request.user
		queryset = EscrowLedger.objects.select_related("transaction", "project")

		if user.is_admin:
			return queryset

		return queryset.filter(Q(transaction__client=user) | Q(transaction__freelancer=user))


class EscrowLedgerDetailView(generics.RetrieveAPIView):
	serializer_class = EscrowLedgerSerializer
	permission_classes = [permissions.IsAuthenticated, IsTransactionParticipant]
	queryset = EscrowLedger.objects.select_related("transaction", "project")

	@swagger_auto_schema(
		operation_summary="Retrieve a specific escrow ledger",
		responses={200: EscrowLedgerSerializer(), 403: "Forbidden", 404: "Not found"}
	)
	def get(self, request, *args, **kwargs):
		return super().get(request, *args, **kwargs)

	def get_object(self):
		obj = get_object_or_404(self.get_queryset(), pk=self.kwargs["pk"])
		self.check_object_permissions(self.request, obj)
		return obj
