"""
Work Orders module.

- Create/list/update work orders; numbers are generated as WO-<year>-<NNN>
- Manual status changes (any value in the status set) are logged
"""
