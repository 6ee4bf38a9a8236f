"""Application-wide constants."""

APP_NAME = "Kit-Ledger"
APP_VERSION = "0.1.0"

# ── Asset registry ───────────────────────────────────────────────
ASSET_CLASSES = ["Piece", "Set", "Toolbox"]
COMPOSITE_ASSET_CLASSES = ["Set", "Toolbox"]

# The remote store writes plain pieces as "Pc"
ASSET_CLASS_ALIASES = {"pc": "Piece", "piece": "Piece",
                       "set": "Set", "toolbox": "Toolbox"}

CONDITION_EXCELLENT = "Excellent"
CONDITION_GOOD = "Good"
CONDITION_DAMAGED = "Damaged"
CONDITION_LOST = "Lost"
CONDITION_MAINTENANCE = "Maintenance"

CONDITIONS = [
    CONDITION_EXCELLENT,
    CONDITION_GOOD,
    CONDITION_DAMAGED,
    CONDITION_LOST,
    CONDITION_MAINTENANCE,
]

# Conditions that make a verified asset a variance
VARIANCE_CONDITIONS = [CONDITION_LOST, CONDITION_DAMAGED]

# Conditions counted as flags on the ledger summary
CRITICAL_CONDITIONS = [CONDITION_DAMAGED, CONDITION_LOST, CONDITION_MAINTENANCE]

# Scope covering every zone
FULL_STORE = "Full Store"

# ── Kit parts ────────────────────────────────────────────────────
PIECE_PRESENT = "Present"
PIECE_MISSING = "Missing"
PIECE_DAMAGED = "Damaged"
PIECE_LOCKED = "Locked"

PIECE_STATUSES = [PIECE_PRESENT, PIECE_MISSING, PIECE_DAMAGED]

DEFECT_MISSING = "MISSING"
DEFECT_DAMAGED = "DAMAGED"

# ── Usage ledger cases ───────────────────────────────────────────
ISSUANCE_STANDARD = "Standard"
ISSUANCE_OUTSTANDING = "Outstanding"

STAGE_STORE = "Store"
STAGE_SUPERVISOR = "Supervisor"
STAGE_MANAGER = "Manager"

ESCALATION_STAGES = [STAGE_STORE, STAGE_SUPERVISOR, STAGE_MANAGER]

STATUS_PENDING = "Pending"
STATUS_GRACE = "In-Grace-Period"
STATUS_HR = "Escalated-to-HR"
STATUS_RESOLVED = "Resolved"

ESCALATION_STATUSES = [STATUS_PENDING, STATUS_GRACE, STATUS_HR, STATUS_RESOLVED]

GRACE_PERIOD_DAYS = 30

# Operator actions on a case
ACTION_GRANT_GRACE = "GRANT_GRACE"
ACTION_ESCALATE_MANAGER = "ESCALATE_TO_MANAGER"
ACTION_HR_ESCALATE = "HR_ESCALATE"
ACTION_FURTHER_SEARCH = "REQUEST_FURTHER_SEARCH"
ACTION_CANCEL = "CANCEL_CASE"
ACTION_VERIFY = "VERIFY"
ACTION_HR_CLOSEOUT = "HR_CLOSEOUT"

DEFAULT_DIRECTIVE_NOTE = "Command Directive Issued"

# HR resolution pathways
PATHWAY_PAYROLL = "PAYROLL_DEDUCTION"
PATHWAY_RESTITUTION = "REPLACED_BY_STAFF"
PATHWAY_DISCIPLINARY = "DISCIPLINARY_ACTION"
PATHWAY_WAIVED = "WAIVED"

HR_PATHWAYS = [
    PATHWAY_PAYROLL,
    PATHWAY_RESTITUTION,
    PATHWAY_DISCIPLINARY,
    PATHWAY_WAIVED,
]

# Custodian used when an audit variance has nobody assigned
AUDIT_FALLBACK_STAFF_ID = "AUDIT-FALLBACK"
AUDIT_FALLBACK_STAFF_NAME = "Audit Oversight"

# ── Maintenance ──────────────────────────────────────────────────
MAINTENANCE_STAGED = "Staged"
MAINTENANCE_IN_REPAIR = "In_Repair"
MAINTENANCE_RESTORED = "Restored"
MAINTENANCE_DECOMMISSIONED = "Decommissioned"

MAINTENANCE_STATUSES = [
    MAINTENANCE_STAGED,
    MAINTENANCE_IN_REPAIR,
    MAINTENANCE_RESTORED,
    MAINTENANCE_DECOMMISSIONED,
]

# ── Remote store sheets ──────────────────────────────────────────
SHEET_ASSETS = "Tools_Master"
SHEET_CASES = "Tools_Usage_Logs"
SHEET_MAINTENANCE = "Tools_Maintenance"
SHEET_AUDITS = "Tools_Audit_History"
