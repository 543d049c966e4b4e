from typing import Optional

from phoneauth.core.errors import ValidationError
from phoneauth.identity.client import IdentityPlatformClient
from phoneauth.identity.models import OrganizationMembership
from phoneauth.observability.logging import log


class OrganizationMembershipGate:
    """
    Attaches a freshly created user to one organization before factor enrollment.
    Memberships are never removed if a later step fails.
    """

    def __init__(self, client: IdentityPlatformClient, default_role: Optional[str] = None):
        self.client = client
        self.default_role = default_role

    def attach(self, user_id: Optional[str], organization_id: Optional[str], role: Optional[str] = None) -> OrganizationMembership:
        if not user_id:
            raise ValidationError("A user must be created before choosing an organization.")
        if not organization_id:
            raise ValidationError("Please select an organization.")

        # IdentityPlatformError propagates; the state machine classifies it
        membership = self.client.create_organization_membership(
            user_id, organization_id, role_slug=role or self.default_role
        )
        log(
            event="organization_membership_created",
            userId=user_id,
            organizationId=organization_id,
            role=membership.roleSlug or role or self.default_role,
        )
        return membership
