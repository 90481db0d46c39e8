from datetime import timedelta
from typing import Any, Dict, List

from learnhub.utils.dates import utcnow

DEMO_COURSES: List[Dict[str, Any]] = [
    {
        "id": "course-1",
        "title": "Introduction to JavaScript",
        "description": "Learn the fundamentals of JavaScript programming language",
        "thumbnail": "https://images.unsplash.com/photo-1579468118864-1b9ea3c0db4a?auto=format&fit=crop&w=500&q=80",
        "instructor": "John Doe",
        "difficulty": "beginner",
        "category": "Programming",
        "duration": 10,
        "lessons": [
            ("lesson-1-1", "JavaScript Basics", "https://www.youtube.com/watch?v=W6NZfCO5SIk"),
            ("lesson-1-2", "Variables and Data Types", "https://www.youtube.com/watch?v=edlFjlzxkSI"),
            ("lesson-1-3", "Functions and Objects", "https://www.youtube.com/watch?v=xUI5Tsl2JpY"),
        ],
    },
    {
        "id": "course-2",
        "title": "React Fundamentals",
        "description": "Build modern user interfaces with React",
        "thumbnail": "https://images.unsplash.com/photo-1633356122102-3fe601e05bd2?auto=format&fit=crop&w=500&q=80",
        "instructor": "Jane Smith",
        "difficulty": "intermediate",
        "category": "Web Development",
        "duration": 15,
        "lessons": [
            ("lesson-2-1", "React Components", "https://www.youtube.com/watch?v=Ke90Tje7VS0"),
            ("lesson-2-2", "State and Props", "https://www.youtube.com/watch?v=35lXWvCuM8o"),
        ],
    },
    {
        "id": "course-3",
        "title": "Advanced CSS Techniques",
        "description": "Master advanced CSS layouts, animations and more",
        "thumbnail": "https://images.unsplash.com/photo-1517134191118-9d595e4c8c2b?auto=format&fit=crop&w=500&q=80",
        "instructor": "Mike Johnson",
        "difficulty": "intermediate",
        "category": "Web Design",
        "duration": 8,
        "lessons": [
            ("lesson-3-1", "CSS Grid", "https://www.youtube.com/watch?v=jV8B24rSN5o"),
            ("lesson-3-2", "CSS Animations", "https://www.youtube.com/watch?v=1PnVor36_40"),
        ],
    },
    {
        "id": "course-4",
        "title": "TypeScript for React Developers",
        "description": "Add type safety to your React applications",
        "thumbnail": "https://images.unsplash.com/photo-1610986602538-431d65df4385?auto=format&fit=crop&w=500&q=80",
        "instructor": "Sarah Wilson",
        "difficulty": "advanced",
        "category": "Programming",
        "duration": 12,
        "lessons": [
            ("lesson-4-1", "TypeScript Basics", "https://www.youtube.com/watch?v=NjN00cM18Z4"),
            ("lesson-4-2", "React with TypeScript", "https://www.youtube.com/watch?v=Z5iWr6Srsj8"),
        ],
    },
]


def demo_courses() -> List[Dict[str, Any]]:
    """Demo catalog for an empty local store. Later entries are older."""
    now = utcnow()
    courses = []
    for position, course in enumerate(DEMO_COURSES):
        created_at = now - timedelta(minutes=position)
        lessons = [
            {
                "id": lesson_id,
                "course_id": course["id"],
                "title": title,
                "video_url": video_url,
                "order_index": order_index,
                "created_at": created_at,
            }
            for order_index, (lesson_id, title, video_url) in enumerate(course["lessons"])
        ]
        courses.append({**course, "created_at": created_at, "lessons": lessons})
    return courses
