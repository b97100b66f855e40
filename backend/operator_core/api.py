from core.responses import success_response
from operator_core.api_base import OperatorAPIView
from operator_core.permissions import IsOperator, operator_roles


class OperatorMeView(OperatorAPIView):
    permission_classes = [IsOperator]

    def get(self, request):
        user = request.user
        return success_response(
            "Operator profile",
            id=user.id,
            name=user.display_name,
            is_staff=user.is_staff,
            roles=sorted(operator_roles(request)),
        )
