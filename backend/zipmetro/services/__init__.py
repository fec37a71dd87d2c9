# Services package init
"""
ZipMetro Backend — Services Layer
===================================

What:  Business logic between the routes (HTTP) and the store facade.
Why:   Routes handle HTTP, services handle the storefront's rules, and
       neither knows which database is underneath.
How:   Every service method receives the StoreFacade it should use.

Service Inventory:
    - AuthService:    registration, login, JWT issue/verify, admin account
    - ProductService: catalog listing and admin maintenance
    - OrderService:   checkout, order history, status changes
    - UserService:    profile, ID submission, notification preferences
    - AdminService:   dashboard stats and site settings
    - FileService:    ID image upload validation and storage
    - seed:           starter catalog loading

AuthService and FileService depend on settings and are built per app in
create_app(); the others are stateless module singletons.
"""
