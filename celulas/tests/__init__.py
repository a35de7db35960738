import os

# Fast hashing and an isolated database for the test run.
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("USE_IN_MEMORY_BACKENDS", "true")
os.environ.setdefault("ENVIRONMENT", "test")
