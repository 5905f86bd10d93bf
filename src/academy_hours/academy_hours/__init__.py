"""Academy Hours package.

Hour ledger, leave/postponement workflow and reporting for an academy back office.
Organized by feature modules (ledger, adjustments, leave, postponements, analytics)
with a thin Flask controller layer over service/repository layers.
"""
