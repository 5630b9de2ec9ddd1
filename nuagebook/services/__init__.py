"""Service layer: business rules between the HTTP routes and repositories."""
