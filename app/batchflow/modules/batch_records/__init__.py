"""
Batch Records module.

One batch record per work order. Owns the manufacturing steps and QC tests
recorded against it; step completion drives completion_percentage, and
submitting a complete record moves its work order to under_review.
"""
