from gradeflow.db.base_class import Base

# import models so Base.metadata sees every table
from gradeflow.models import assessment, course, login_lockout, submission, user  # noqa: F401, E402
