# backend/config/constants.py

# -----------------------------
# ORDER STATUSES
# -----------------------------

STATUS_REQUESTED = "requested"
STATUS_IN_PROGRESS = "inProgress"
STATUS_ADVERTISER_APPROVAL = "advertiserApproval"
STATUS_COMPLETED = "completed"
STATUS_REJECTED = "rejected"

ORDER_STATUSES = (
    STATUS_REQUESTED,
    STATUS_IN_PROGRESS,
    STATUS_ADVERTISER_APPROVAL,
    STATUS_COMPLETED,
    STATUS_REJECTED,
)

TERMINAL_STATUSES = {STATUS_COMPLETED, STATUS_REJECTED}

# Directed state graph. Terminal states have no outgoing edges.
STATUS_GRAPH = {
    STATUS_REQUESTED: {STATUS_IN_PROGRESS, STATUS_REJECTED},
    STATUS_IN_PROGRESS: {STATUS_ADVERTISER_APPROVAL, STATUS_REJECTED},
    STATUS_ADVERTISER_APPROVAL: {STATUS_COMPLETED, STATUS_REJECTED},
    STATUS_COMPLETED: set(),
    STATUS_REJECTED: set(),
}

# -----------------------------
# ORDER TYPES
# -----------------------------

TYPE_GUEST_POST = "guestPost"
TYPE_LINK_INSERTION = "linkInsertion"
TYPE_WRITING_GUEST_POST = "writingGuestPost"

ORDER_TYPES = (TYPE_GUEST_POST, TYPE_LINK_INSERTION, TYPE_WRITING_GUEST_POST)

# Types whose content pointer is stored on post_id
POST_ID_TYPES = {TYPE_GUEST_POST, TYPE_WRITING_GUEST_POST}

# -----------------------------
# ACTORS / ROLES
# -----------------------------

ACTOR_ADMIN = "admin"
ACTOR_PUBLISHER = "publisher"
ACTOR_ADVERTISER = "advertiser"

ADMIN_ROLES = {"admin", "super admin"}

# =========================================
# TRANSITION POLICY (actor, current) -> targets
# =========================================
# Admin is not listed: it bypasses the table.

TRANSITION_POLICY = {
    **{(ACTOR_PUBLISHER, status): targets for status, targets in STATUS_GRAPH.items()},
    (ACTOR_ADVERTISER, STATUS_ADVERTISER_APPROVAL): {STATUS_COMPLETED, STATUS_REJECTED},
}

# -----------------------------
# CONTENT SYNC
# -----------------------------

# order status -> content record status
CONTENT_STATUS_FOR_ORDER_STATUS = {
    STATUS_IN_PROGRESS: "inProgress",
    STATUS_COMPLETED: "approved",
}

WRITING_POST_TYPE = "writing-gp"
WRITING_POST_MATCH_LIMIT = 10

POST_SUMMARY_FIELDS = ("title", "content")
POST_DETAIL_FIELDS = (
    "title",
    "content",
    "metaTitle",
    "metaDescription",
    "keywords",
    "completeUrl",
    "anchorPairs",
    "description",
    "domain",
    "slug",
)

# -----------------------------
# ORDER META
# -----------------------------

META_PROPERTIES = (
    "rejectionReason",
    "internalNote",
    "customerFeedback",
    "publisherNote",
    "advertiserNote",
)
META_VALUE_MAX_LENGTH = 1000

# -----------------------------
# TRENDS / LISTING
# -----------------------------

TREND_PERIOD_DAYS = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
}

DEFAULT_PAGE_LIMIT = 10
ADMIN_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100
