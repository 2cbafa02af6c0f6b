"""Import all models so SQLModel.metadata picks them up."""

from voicehub.models.agent import Agent, AgentCreate, AgentRead, AgentRef, AgentUpdate, VoiceProvider
from voicehub.models.conversation import (
    CallDirection,
    Conversation,
    ConversationDetail,
    ConversationRead,
)
from voicehub.models.invitation import (
    InvitationStatus,
    WorkspaceInvitation,
)
from voicehub.models.partner import (
    Partner,
    PartnerCreate,
    PartnerMember,
    PartnerMemberRole,
    PartnerRead,
    PartnerUpdate,
    PlanTier,
)
from voicehub.models.principal import Principal, PrincipalCreate, PrincipalRead, SuperAdmin
from voicehub.models.subscription import (
    SubscriptionPlan,
    SubscriptionPlanCreate,
    SubscriptionPlanUpdate,
    SubscriptionStatus,
    WorkspaceSubscription,
)
from voicehub.models.white_label import (
    WhiteLabelVariant,
    WhiteLabelVariantCreate,
    WhiteLabelVariantRead,
    WhiteLabelVariantUpdate,
)
from voicehub.models.workspace import (
    Workspace,
    WorkspaceCreate,
    WorkspaceMember,
    WorkspaceMemberRole,
    WorkspaceRead,
    WorkspaceUpdate,
)

__all__ = [
    "Agent",
    "AgentCreate",
    "AgentRead",
    "AgentRef",
    "AgentUpdate",
    "CallDirection",
    "Conversation",
    "ConversationDetail",
    "ConversationRead",
    "InvitationStatus",
    "Partner",
    "PartnerCreate",
    "PartnerMember",
    "PartnerMemberRole",
    "PartnerRead",
    "PartnerUpdate",
    "PlanTier",
    "Principal",
    "PrincipalCreate",
    "PrincipalRead",
    "SubscriptionPlan",
    "SubscriptionPlanCreate",
    "SubscriptionPlanUpdate",
    "SubscriptionStatus",
    "SuperAdmin",
    "VoiceProvider",
    "WhiteLabelVariant",
    "WhiteLabelVariantCreate",
    "WhiteLabelVariantRead",
    "WhiteLabelVariantUpdate",
    "Workspace",
    "WorkspaceCreate",
    "WorkspaceInvitation",
    "WorkspaceMember",
    "WorkspaceMemberRole",
    "WorkspaceRead",
    "WorkspaceSubscription",
    "WorkspaceUpdate",
]
