from django.utils.deprecation import MiddlewareMixin
from .models import Company


class CurrentCompanyMiddleware(MiddlewareMixin):
    # Attach request.company for the logged-in user.
    # Views pass it explicitly to the services, which never look it up themselves.
    def process_request(self, request):
        request.company = None
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return

        companies = Company.objects.filter(
            memberships__user=user, memberships__is_active=True
        )
        # If user switched companies, choice is stored in the session
        company_id = request.session.get("active_company_id")
        if company_id:
            # user must be a member of that company; tampered sessions get nothing
            request.company = companies.filter(pk=company_id).first()
        else:
            request.company = companies.order_by("pk").first()
