"""
Services module for business logic.

- base_service.py: BaseCRUDService, the transactional orchestration over a repository
- crud/: Query option extraction shared with the repositories
- domain/: One service per entity - USE THESE

Usage:
    from rest_api.services.domain import UserService
    service = UserService(db)
    users = service.index({"with": "roles", "sort": "-name"})
"""
