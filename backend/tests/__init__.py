# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
import chaveamento.models  # noqa: F401
