# Routes package init
"""
ZipMetro Backend — API Routes Package
=======================================

What:  HTTP route handlers for the storefront API.

Route Inventory:
    - auth.py:      POST /api/auth/register, POST /api/auth/login, GET /api/auth/verify
    - products.py:  GET/POST /api/products, GET/PUT/DELETE /api/products/{id}
    - orders.py:    GET/POST /api/orders, GET /api/orders/{id},
                    PATCH /api/orders/{id}/status
    - users.py:     GET/PUT /api/users/me, POST /api/users/me/id,
                    GET/PUT /api/users/me/notifications
    - upload.py:    POST /api/upload/id
    - admin.py:     GET /api/admin/stats, GET/PUT /api/admin/settings,
                    GET /api/admin/orders
    - health.py:    GET /health

Design Principle:
    Routes are THIN: pull data out of the request, call a service with the
    injected store, pick the status code. Business rules live in services.
"""
