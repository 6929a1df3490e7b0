"""Comment Intake API."""
