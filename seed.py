"""Sample catalog, users and gamification data loaded into an empty store."""
from datetime import datetime, timedelta

from gamification import COURSE_COMPLETION, PERFECT_SCORE, QUIZ_MASTERY, STREAK, TOPIC_COMPLETION
from quizzes import MULTIPLE_CHOICE, TRUE_FALSE
from storage import Storage

USERS = [
    {"name": "John Doe", "email": "john@example.com", "password": "password123", "age": 28,
     "bio": "Passionate learner and tech enthusiast", "profile_pic_url": "https://i.pravatar.cc/150?u=john"},
    {"name": "Jane Smith", "email": "jane@example.com", "password": "password456", "age": 24,
     "bio": "Computer science student", "profile_pic_url": "https://i.pravatar.cc/150?u=jane"},
]

COURSES = [
    ("Web Development Fundamentals", "Learn the basics of web development, including HTML, CSS, and JavaScript",
     "https://cdn.pixabay.com/photo/2016/11/19/14/00/code-1839406_1280.jpg"),
    ("Data Structures and Algorithms", "Master the essential computer science concepts for technical interviews",
     "https://cdn.pixabay.com/photo/2016/11/19/22/52/coding-1841550_1280.jpg"),
    ("Machine Learning Basics", "Introduction to machine learning concepts and algorithms",
     "https://cdn.pixabay.com/photo/2020/01/22/10/18/ai-4784917_1280.jpg"),
    ("Mobile App Development", "Learn to build native and cross-platform mobile applications for iOS and Android",
     "https://cdn.pixabay.com/photo/2019/10/09/07/28/development-4536630_1280.png"),
    ("Cybersecurity Essentials", "Understand fundamental concepts of network security, encryption, and threat analysis",
     "https://cdn.pixabay.com/photo/2017/05/10/22/28/cyber-security-2301976_1280.jpg"),
    ("Cloud Computing and DevOps", "Learn about cloud services, CI/CD pipelines, and infrastructure as code",
     "https://cdn.pixabay.com/photo/2018/05/16/18/13/cloud-3406627_1280.jpg"),
    ("Blockchain Technology", "Explore the fundamentals of blockchain, cryptocurrency, and smart contracts",
     "https://cdn.pixabay.com/photo/2018/01/18/07/31/bitcoin-3089728_1280.jpg"),
    ("UI/UX Design Principles", "Master the art of creating intuitive and user-friendly digital experiences",
     "https://cdn.pixabay.com/photo/2017/10/10/21/47/laptop-2838921_1280.jpg"),
    ("Game Development with Unity", "Create interactive 2D and 3D games using the Unity game engine",
     "https://cdn.pixabay.com/photo/2021/09/07/07/11/game-6603047_1280.jpg"),
    ("Big Data and Analytics", "Learn to process, analyze, and derive insights from large datasets",
     "https://cdn.pixabay.com/photo/2017/02/20/14/18/data-2082627_1280.jpg"),
]

# course index -> [(title, description, prerequisite titles)], listed in `order`
TOPICS = {
    0: [
        ("HTML Basics", "Learn the fundamentals of HTML, the markup language of the web", []),
        ("CSS Styling", "Style your web pages with CSS", ["HTML Basics"]),
        ("JavaScript Essentials", "Add interactivity to your web pages with JavaScript", ["HTML Basics", "CSS Styling"]),
        ("Responsive Web Design",
         "Create websites that work on all devices using media queries and flexible layouts", ["CSS Styling"]),
        ("Web APIs and AJAX", "Learn to use JavaScript to communicate with servers and external APIs",
         ["JavaScript Essentials"]),
        ("Modern Frontend Frameworks",
         "Introduction to React, Vue, and Angular for building complex web applications",
         ["JavaScript Essentials", "Web APIs and AJAX"]),
        ("Web Accessibility", "Make your websites usable by everyone, including people with disabilities",
         ["HTML Basics", "CSS Styling"]),
        ("Backend Integration", "Connect your frontend to backend services and databases",
         ["Web APIs and AJAX", "Modern Frontend Frameworks"]),
    ],
    1: [
        ("Arrays and Strings", "Fundamentals of array and string manipulation", []),
        ("Linked Lists", "Understanding linked list data structures", ["Arrays and Strings"]),
        ("Stacks and Queues", "Learn about LIFO and FIFO data structures and their applications", ["Linked Lists"]),
        ("Trees and Graphs", "Explore hierarchical and network data structures", ["Linked Lists"]),
        ("Sorting Algorithms", "Master different methods for organizing data efficiently", ["Arrays and Strings"]),
        ("Dynamic Programming", "Solve complex problems by breaking them down into simpler subproblems",
         ["Sorting Algorithms"]),
        ("Hash Tables", "Understand key-value storage for efficient data retrieval", ["Arrays and Strings"]),
    ],
    2: [
        ("Introduction to Machine Learning",
         "Understand the basic concepts, types, and applications of machine learning", []),
        ("Data Preprocessing", "Learn techniques for cleaning, transforming, and preparing data for ML models",
         ["Introduction to Machine Learning"]),
        ("Supervised Learning", "Explore classification and regression algorithms with labeled data",
         ["Data Preprocessing"]),
        ("Unsupervised Learning", "Discover patterns and structures in unlabeled data using clustering algorithms",
         ["Data Preprocessing"]),
        ("Neural Networks Fundamentals", "Understand the building blocks of deep learning systems",
         ["Supervised Learning", "Unsupervised Learning"]),
        ("Model Evaluation", "Learn methods to assess and improve the performance of ML models",
         ["Supervised Learning"]),
    ],
    3: [
        ("Mobile Platform Fundamentals", "Understanding iOS and Android ecosystems and architecture", []),
        ("Native App Development", "Building iOS apps with Swift and Android apps with Kotlin",
         ["Mobile Platform Fundamentals"]),
        ("Cross-Platform Development", "Creating mobile apps with React Native and Flutter",
         ["Mobile Platform Fundamentals"]),
        ("Mobile UI/UX Design", "Principles of creating intuitive and engaging mobile interfaces",
         ["Mobile Platform Fundamentals"]),
        ("Backend Services for Mobile", "Integrating APIs, databases, and cloud services with mobile apps",
         ["Native App Development", "Cross-Platform Development"]),
    ],
    4: [
        ("Security Fundamentals", "Core concepts of information security and cybersecurity", []),
        ("Network Security", "Protecting network infrastructure from unauthorized access and attacks",
         ["Security Fundamentals"]),
        ("Cryptography", "Understanding encryption, hashing, and secure communication protocols",
         ["Security Fundamentals"]),
        ("Security Assessment", "Methods for identifying vulnerabilities and testing security measures",
         ["Network Security", "Cryptography"]),
    ],
}

RESOURCES = [
    ("HTML Basics", "MDN HTML Guide", "https://developer.mozilla.org/en-US/docs/Web/HTML", "web"),
    ("HTML Basics", "HTML Crash Course", "https://www.youtube.com/watch?v=UB1O30fR-EE", "video"),
    ("CSS Styling", "MDN CSS Reference", "https://developer.mozilla.org/en-US/docs/Web/CSS", "web"),
]

ACHIEVEMENTS = [
    ("Streak Master", "Maintain a 7-day learning streak", STREAK, 7, 100,
     "https://cdn-icons-png.flaticon.com/512/6941/6941697.png"),
    ("Topic Explorer", "Complete 10 topics", TOPIC_COMPLETION, 10, 150,
     "https://cdn-icons-png.flaticon.com/512/2910/2910824.png"),
    ("Course Champion", "Complete an entire course", COURSE_COMPLETION, 1, 300,
     "https://cdn-icons-png.flaticon.com/512/2583/2583344.png"),
    ("Quiz Wizard", "Achieve perfect scores on 5 quizzes", PERFECT_SCORE, 5, 200,
     "https://cdn-icons-png.flaticon.com/512/2228/2228087.png"),
    ("Quiz Master", "Complete 10 quizzes", QUIZ_MASTERY, 10, 150,
     "https://cdn-icons-png.flaticon.com/512/4207/4207253.png"),
]

QUIZZES = [
    {
        "topic": "HTML Basics", "title": "HTML Basics Quiz", "description": "Test your knowledge of HTML fundamentals",
        "difficulty": 1, "points_to_earn": 10,
        "questions": [
            ("What does HTML stand for?", MULTIPLE_CHOICE,
             ["Hyper Text Markup Language", "High Tech Modern Language", "Hyper Transfer Markup Language",
              "Hyperlink Text Management Language"],
             "Hyper Text Markup Language",
             "HTML stands for Hyper Text Markup Language, which is the standard markup language for creating web pages."),
            ("Which tag is used to create a hyperlink in HTML?", MULTIPLE_CHOICE,
             ["<link>", "<a>", "<href>", "<url>"], "<a>",
             "The <a> (anchor) tag is used to create hyperlinks in HTML, typically with an href attribute "
             "that specifies the link's destination."),
            ("HTML elements are nested within each other.", TRUE_FALSE, ["True", "False"], "True",
             "HTML elements can contain other elements, creating a nested structure often referred to as "
             "the DOM (Document Object Model)."),
        ],
    },
    {
        "topic": "JavaScript Essentials", "title": "JavaScript Fundamentals Quiz",
        "description": "Test your knowledge of JavaScript basics", "difficulty": 2, "points_to_earn": 15,
        "questions": [
            ("Which of these is NOT a JavaScript data type?", MULTIPLE_CHOICE,
             ["String", "Boolean", "Integer", "Object"], "Integer",
             "JavaScript doesn't have an Integer type specifically. It has Number, which includes both "
             "integers and floating-point values."),
            ("JavaScript is a case-sensitive language.", TRUE_FALSE, ["True", "False"], "True",
             "JavaScript is case-sensitive, meaning that 'myVariable' and 'myvariable' would be treated as "
             "different variables."),
        ],
    },
]


def is_seeded(storage: Storage) -> bool:
    return bool(storage.get_courses())


def seed_all(storage: Storage, hash_password, now: datetime | None = None) -> bool:
    """Load the sample data unless the store already has courses. Returns True if it seeded."""
    if is_seeded(storage):
        return False
    now = now or datetime.now()

    users = []
    for u in USERS:
        fields = {k: v for k, v in u.items() if k != "password"}
        users.append(storage.create_user(password_hash=hash_password(u["password"]), **fields))
    john, jane = users

    topics = {}
    for index, (title, description, image_url) in enumerate(COURSES):
        course = storage.create_course(title=title, description=description, image_url=image_url)
        for order, (t_title, t_description, prereqs) in enumerate(TOPICS.get(index, []), start=1):
            topics[t_title] = storage.create_topic(
                course_id=course.id,
                title=t_title,
                description=t_description,
                order=order,
                prerequisites=[topics[p].id for p in prereqs],
            )

    for topic_title, title, url, kind in RESOURCES:
        storage.create_resource(topic_id=topics[topic_title].id, title=title, url=url, type=kind)

    note = storage.create_note(
        topic_id=topics["HTML Basics"].id, user_id=john.id,
        content="Remember to always include doctype at the beginning of your HTML file! "
                "```html\n<!DOCTYPE html>\n```",
    )
    note.likes = 5
    note = storage.create_note(
        topic_id=topics["CSS Styling"].id, user_id=jane.id,
        content="CSS Grid and Flexbox are two powerful layout systems. Here's a quick comparison:\n\n"
                "| Feature | Flexbox | Grid |\n| --- | --- | --- |\n| Dimension | 1D | 2D |\n"
                "| Item Alignment | Easy | Complex |\n| Use case | Components | Layouts |",
    )
    note.likes, note.dislikes = 3, 1

    storage.upsert_progress(john.id, topics["HTML Basics"].id, True, now - timedelta(days=7))
    storage.upsert_progress(john.id, topics["CSS Styling"].id, True, now - timedelta(days=3))
    storage.upsert_progress(john.id, topics["JavaScript Essentials"].id, False, None)
    storage.set_user_streak(john.id, 3, now)

    storage.create_task(
        user_id=john.id, title="Complete HTML exercises", topic_id=topics["HTML Basics"].id,
        scheduled_date=now + timedelta(days=1), due_date=now + timedelta(days=3), importance=2,
    )
    storage.create_task(
        user_id=john.id, title="Build a sample CSS page", topic_id=topics["CSS Styling"].id,
        scheduled_date=now + timedelta(days=4), due_date=now + timedelta(days=7), importance=3,
    )

    achievements = [
        storage.create_achievement(
            title=title, description=description, type=kind, threshold=threshold, points=points, badge_url=badge,
        )
        for title, description, kind, threshold, points, badge in ACHIEVEMENTS
    ]

    for entry in QUIZZES:
        quiz = storage.create_quiz(
            topic_id=topics[entry["topic"]].id, title=entry["title"], description=entry["description"],
            difficulty=entry["difficulty"], points_to_earn=entry["points_to_earn"],
        )
        for text, kind, options, answer, explanation in entry["questions"]:
            storage.create_quiz_question(
                quiz_id=quiz.id, question_text=text, question_type=kind, options=options,
                correct_answer=answer, explanation=explanation,
            )

    # sample standing, written directly rather than earned
    storage.create_user_achievement(john.id, achievements[0].id, now - timedelta(days=5))
    storage.save_user_points(john.id, 250, 3)
    storage.save_user_points(jane.id, 100, 2)
    return True
