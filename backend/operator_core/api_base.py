from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView


class OperatorThrottleMixin:
    """Operator endpoints share the ``operator`` throttle scope."""

    throttle_scope = "operator"
    throttle_classes = [ScopedRateThrottle]


class OperatorAPIView(OperatorThrottleMixin, APIView):
    pass
