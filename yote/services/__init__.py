# Services package init
"""
Yote — Services Layer
======================

What:  Query building and persistence rules between the routes (HTTP) and
       the database session.
How:   Services accept an AsyncSession plus plain dicts and return
       documents keyed by stored field names; routes wrap them in the
       {success, <key>} envelope.

Service Inventory:
    - ResourceService: generic CRUD, ref-path and search queries
    - TaskService: tasks, plus the `complete` and `status` updates
    - NoteService: notes, bound to an existing task and annotated with
      their author on by-ref reads
"""
