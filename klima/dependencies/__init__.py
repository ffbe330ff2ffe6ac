# Dependency injection package
