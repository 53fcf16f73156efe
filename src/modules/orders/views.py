"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets: one for admins
(full management) and one for drivers (open orders and their own
deliveries).  Domain exceptions propagate to ``standard_exception_handler``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.permissions import IsAdmin, IsDriver
from modules.drivers.repositories.django_repository import DriverDjangoRepository
from modules.orders.dtos import (
    CompleteOrderDTO,
    CreateOrderDTO,
    DeliveryAddressDTO,
    OrderItemDTO,
    UpdateOrderDTO,
)
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AssignOrderSerializer,
    CancelOrderSerializer,
    CompleteOrderSerializer,
    CreateOrderSerializer,
    DeliveryHistoryQuerySerializer,
    OrderListSerializer,
    OrderSerializer,
    PurgeSerializer,
    RevenueQuerySerializer,
    UpdateOrderSerializer,
)
from modules.orders.services import OrderService


def _service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        driver_repository=DriverDjangoRepository(),
    )


class _OrderViewSetBase(GenericViewSet):
    queryset = Order.objects.all()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = _service()

    def _paginated(self, queryset) -> Response:
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)


class AdminOrderViewSet(_OrderViewSetBase):
    """Admin order management.

    Does **not** extend ``ModelViewSet``; all ORM access goes through the
    service/repository layer.
    """

    permission_classes = [IsAdmin]
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer_name", "customer_phone"]
    ordering_fields = ["created_at", "total_amount", "delivery_status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "order_creation" if self.action == "create" else None
        return super().get_throttles()

    def get_queryset(self):
        return self._service.list_orders()

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/"""
        return self._paginated(self.filter_queryset(self.get_queryset()))

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/admin/orders/{pk}/"""
        return Response(OrderSerializer(self._service.get_order(pk)).data)

    def create(self, request: Request) -> Response:
        """POST /api/v1/admin/orders/"""
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        dto = CreateOrderDTO(
            customer_name=data["customer_name"],
            customer_phone=data["customer_phone"],
            items=[OrderItemDTO(**item) for item in data["items"]],
            address=DeliveryAddressDTO(**data["delivery_address"]),
            total_amount=data["total_amount"],
            payment_mode=data["payment_mode"],
            notes=data.get("notes", ""),
        )
        order = self._service.create_order(dto, user_id=request.user.pk)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/admin/orders/{pk}/

        Delivery status is not editable here; use the dedicated actions.
        """
        serializer = UpdateOrderSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        if "items" in data:
            data["items"] = [OrderItemDTO(**item) for item in data["items"]]
        if "delivery_address" in data:
            data["address"] = DeliveryAddressDTO(**data.pop("delivery_address"))

        order = self._service.update_order(pk, UpdateOrderDTO(**data))
        return Response(OrderSerializer(order).data)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/admin/orders/{pk}/ (soft delete)"""
        self._service.delete_order(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def assign(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/admin/orders/{pk}/assign/"""
        serializer = AssignOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.assign_order(
            pk, str(serializer.validated_data["driver_id"]), user_id=request.user.pk
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/admin/orders/{pk}/cancel/"""
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.cancel_order(
            pk, notes=serializer.validated_data["notes"], user_id=request.user.pk
        )
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["post"])
    def purge(self, request: Request) -> Response:
        """POST /api/v1/admin/orders/purge/"""
        serializer = PurgeSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        counts = self._service.purge_all(serializer.validated_data["confirmation"])
        return Response({"deleted": counts})

    @action(detail=False, methods=["get"])
    def dashboard(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/dashboard/"""
        return Response(self._service.dashboard().model_dump(mode="json"))

    @action(detail=False, methods=["get"])
    def history(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/history/

        Delivered orders filtered by ``start_date``/``end_date`` (delivery
        day) and ``driver``, plus ``total_revenue`` of the filtered set.
        """
        query = DeliveryHistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        orders, revenue = self._service.delivery_history(query.to_filters())

        response = self._paginated(orders)
        response.data["total_revenue"] = str(revenue)
        return response

    @action(detail=False, methods=["get"])
    def revenue(self, request: Request) -> Response:
        """GET /api/v1/admin/orders/revenue/?period=today|week|month|all"""
        query = RevenueQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        report = self._service.revenue_report(query.validated_data["period"])
        return Response(report.model_dump(mode="json", by_alias=True))


class DriverOrderViewSet(_OrderViewSetBase):
    """Driver view of the order board and their own deliveries."""

    permission_classes = [IsDriver]

    def get_queryset(self):
        return self._service.list_open_orders()

    def list(self, request: Request) -> Response:
        """GET /api/v1/driver/orders/ (Pending, Assigned and In Transit)"""
        return self._paginated(self.get_queryset())

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/driver/orders/{pk}/"""
        return Response(OrderSerializer(self._service.get_order(pk)).data)

    @action(detail=True, methods=["post"])
    def take(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/driver/orders/{pk}/take/"""
        order = self._service.claim_order(pk, request.user.pk)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def start(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/driver/orders/{pk}/start/"""
        order = self._service.start_delivery(pk, request.user.pk)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def complete(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/driver/orders/{pk}/complete/"""
        serializer = CompleteOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = CompleteOrderDTO(**serializer.validated_data)
        order = self._service.complete_order(pk, request.user.pk, dto)
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def history(self, request: Request) -> Response:
        """GET /api/v1/driver/orders/history/"""
        return self._paginated(self._service.driver_history(request.user.pk))
