# Overview: Permission engine services (catalog, grant store, resolver, cache, audit, guard, maintenance).
