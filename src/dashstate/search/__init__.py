"""Search ranking pipeline and the controller that schedules search runs."""
