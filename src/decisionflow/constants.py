"""Package-wide constants."""

PACKAGE_VERSION = "0.1.0"
SCHEMA_VERSION = "1.0.0"

FLOW_INDEX_KEY = "decision-flows"
FLOW_KEY_PREFIX = "flow:"
EXECUTION_KEY_PREFIX = "exec:"
AUDIT_KEY_PREFIX = "audit:"
SUBJECT_KEY_PREFIX = "subject:"

BRANCH_TRUE_LABEL = "true"
BRANCH_FALSE_LABEL = "false"
