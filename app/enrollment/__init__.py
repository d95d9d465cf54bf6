"""
Enrollment app for the lead pipeline and its money ledger.

This app handles:
- Lead intake and the status state machine
- Placement tests, offers and scheduling details
- Course payments, refunds and the cancel workflow
- Ledger synchronization and finance reporting

Usage:
    from enrollment.context import EnrollmentContext
    from enrollment.services.cancel_workflow import CancelWorkflow, CancelRequest

    context = EnrollmentContext.for_admin()
    outcome = CancelWorkflow.execute(lead_id, CancelRequest(), context)
"""
