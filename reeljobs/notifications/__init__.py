"""In-app notifications for job owners."""
