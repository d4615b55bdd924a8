from storefront.tests.conftest import admin, engine  # noqa: F401
