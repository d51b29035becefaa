from gradeflow.core.navigation import back_link

ID = "65f0c0ffee0123456789abcd"


def test_instructor_back_link():
    assert back_link("instructor", ID) == f"/dashboard/instructor/assessments/{ID}/submissions"
    assert back_link("instructor", "undefined") == "/dashboard/instructor/assessments"
    assert back_link("instructor") == "/dashboard/instructor/assessments"


def test_student_back_link():
    assert back_link("student", ID) == f"/dashboard/students/assessment/{ID}"
    assert back_link("student", None) == "/dashboard/students/assessment"


def test_other_roles_fall_back_to_dashboard():
    assert back_link("admin", ID) == "/dashboard"
    assert back_link("nobody", ID) == "/dashboard"
