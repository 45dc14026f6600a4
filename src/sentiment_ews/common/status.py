"""Stage status labels shared by results and reports."""

COMPUTED = 'computed'
NOT_COMPUTED = 'not_computed'
FAILED = 'failed'
