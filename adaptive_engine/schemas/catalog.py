"""Course catalog schemas (owned by the course service, read-only here)."""

from pydantic import BaseModel


class CatalogTopic(BaseModel):
    name: str
    content_count: int = 0


class CourseCatalog(BaseModel):
    """Ordered topic list for one course; order is the course's syllabus order."""

    course_id: str
    topics: list[CatalogTopic] = []

    def position(self, topic_name: str) -> int | None:
        for index, topic in enumerate(self.topics):
            if topic.name == topic_name:
                return index
        return None
