# Pure business rules: no storage, no HTTP.
