"""Value objects shared by the render pipeline and the views."""
