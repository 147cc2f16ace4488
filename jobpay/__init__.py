"""Mobile Money checkout sessions for the job marketplace."""
