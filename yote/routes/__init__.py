# Routes package init
"""
Yote — API Routes Package
==========================

Route Inventory:
    - resource.py:  the CRUD surface shared by every resource
                    (list, search, by-ref, by-ref-list, default, schema,
                    get, create, update, delete)
    - tasks.py:     /api/tasks plus PUT /{id}/complete and /{id}/status
    - notes.py:     /api/notes
    - health.py:    GET /health

Routes are thin: pull values out of the request, call the service, wrap the
result in the {success, <key>} envelope.
"""
