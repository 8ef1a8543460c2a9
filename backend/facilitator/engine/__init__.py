"""Discussion session state machine, scheduler and reports."""
