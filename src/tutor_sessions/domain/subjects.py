"""Subject tags, match groups and tag compatibility."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

SUBJECT_CATEGORIES: dict[str, tuple[str, ...]] = {
    "Class 6–8 (Foundation)": (
        "Basic Mathematics",
        "General Science",
        "Social Studies",
        "English Grammar",
        "Hindi",
        "Sanskrit",
        "Mental Ability",
    ),
    "Class 9–10 (Board Prep)": (
        "Algebra",
        "Geometry",
        "Trigonometry",
        "Statistics",
        "Physics – Mechanics",
        "Physics – Light & Sound",
        "Chemistry – Acids & Bases",
        "Chemistry – Metals & Non-Metals",
        "Biology – Life Processes",
        "Biology – Heredity",
        "English Literature",
        "Social Science – History",
        "Social Science – Geography",
        "Social Science – Civics",
        "Social Science – Economics",
    ),
    "Class 11–12 (Senior Secondary)": (
        "Calculus",
        "Linear Algebra",
        "Probability & Statistics",
        "Physics – Thermodynamics",
        "Physics – Electromagnetism",
        "Physics – Optics",
        "Physics – Modern Physics",
        "Chemistry – Organic",
        "Chemistry – Inorganic",
        "Chemistry – Physical",
        "Biology – Botany",
        "Biology – Zoology",
        "Biology – Genetics & Evolution",
        "Accountancy",
        "Business Studies",
        "Economics",
        "Political Science",
        "Psychology",
    ),
    "Exam Focus": (
        "JEE Mains – Maths",
        "JEE Mains – Physics",
        "JEE Mains – Chemistry",
        "JEE Advanced",
        "NEET – Physics",
        "NEET – Chemistry",
        "NEET – Biology",
        "CUET Preparation",
        "CBSE Board Prep",
        "ICSE Board Prep",
        "State Board Prep",
        "NTSE / Olympiad",
        "SAT / ACT",
        "IELTS / TOEFL",
        "GRE / GMAT",
        "GATE",
        "UPSC Foundations",
    ),
    "Languages": (
        "English – Speaking",
        "English – Writing",
        "Hindi",
        "Sanskrit",
        "French",
        "German",
        "Spanish",
        "Japanese",
        "Korean",
    ),
    "Coding & Tech": (
        "Computer Science",
        "Python Programming",
        "Java Programming",
        "C/C++ Programming",
        "JavaScript / Web Dev",
        "Data Structures",
        "Algorithms",
        "Machine Learning",
        "DBMS / SQL",
        "Competitive Programming",
    ),
    "Creative & Other": (
        "Art & Drawing",
        "Music – Vocal",
        "Music – Instrument",
        "Graphic Design",
        "Video Editing",
        "Public Speaking",
    ),
}

# A tag may sit in several groups; two tags match when they share any group.
MATCH_GROUPS: dict[str, tuple[str, ...]] = {
    "maths": (
        "Mathematics",
        "Maths",
        "Math",
        "Basic Mathematics",
        "Algebra",
        "Geometry",
        "Trigonometry",
        "Calculus",
        "Linear Algebra",
        "Statistics",
        "Probability & Statistics",
        "Mental Ability",
        "JEE Mains – Maths",
        "NTSE / Olympiad",
    ),
    "physics": (
        "Physics",
        "General Science",
        "Physics – Mechanics",
        "Physics – Light & Sound",
        "Physics – Thermodynamics",
        "Physics – Electromagnetism",
        "Physics – Optics",
        "Physics – Modern Physics",
        "JEE Mains – Physics",
        "JEE Advanced",
        "NEET – Physics",
    ),
    "chemistry": (
        "Chemistry",
        "General Science",
        "Chemistry – Acids & Bases",
        "Chemistry – Metals & Non-Metals",
        "Chemistry – Organic",
        "Chemistry – Inorganic",
        "Chemistry – Physical",
        "JEE Mains – Chemistry",
        "JEE Advanced",
        "NEET – Chemistry",
    ),
    "biology": (
        "Biology",
        "General Science",
        "Biology – Life Processes",
        "Biology – Heredity",
        "Biology – Botany",
        "Biology – Zoology",
        "Biology – Genetics & Evolution",
        "NEET – Biology",
    ),
    "english": (
        "English",
        "English Grammar",
        "English Literature",
        "English – Speaking",
        "English – Writing",
        "IELTS / TOEFL",
        "SAT / ACT",
    ),
    "socialscience": (
        "Social Studies",
        "History",
        "Geography",
        "Civics",
        "Political Science",
        "Social Science – History",
        "Social Science – Geography",
        "Social Science – Civics",
        "Social Science – Economics",
    ),
    "coding": (
        "Computer Science",
        "Python Programming",
        "Java Programming",
        "C/C++ Programming",
        "JavaScript / Web Dev",
        "Data Structures",
        "Algorithms",
        "Machine Learning",
        "DBMS / SQL",
        "Competitive Programming",
        "GATE",
    ),
    "commerce": ("Accountancy", "Business Studies", "Economics"),
    "jee": (
        "JEE Mains – Maths",
        "JEE Mains – Physics",
        "JEE Mains – Chemistry",
        "JEE Advanced",
    ),
    "neet": ("NEET – Physics", "NEET – Chemistry", "NEET – Biology"),
    "boardprep": (
        "CBSE Board Prep",
        "ICSE Board Prep",
        "State Board Prep",
        "CUET Preparation",
    ),
    "music": ("Music – Vocal", "Music – Instrument"),
    "hindi": ("Hindi",),
    "sanskrit": ("Sanskrit",),
    "french": ("French",),
    "german": ("German",),
    "spanish": ("Spanish",),
    "japanese": ("Japanese",),
    "korean": ("Korean",),
}


def normalize_tag(tag: str) -> str:
    """Return the lookup key for a subject tag."""
    return tag.strip().casefold()


@dataclass(frozen=True)
class TagIndex:
    """Bidirectional index between subject tags and match groups."""

    tag_to_groups: Mapping[str, frozenset[str]]
    group_to_tags: Mapping[str, frozenset[str]]

    @classmethod
    def build(cls, groups: Mapping[str, Iterable[str]]) -> "TagIndex":
        """Build the index once from a group -> tags table."""
        tag_to_groups: dict[str, set[str]] = {}
        group_to_tags: dict[str, frozenset[str]] = {}
        for group, tags in groups.items():
            keys = frozenset(normalize_tag(tag) for tag in tags)
            group_to_tags[group] = keys
            for key in keys:
                tag_to_groups.setdefault(key, set()).add(group)
        return cls(
            tag_to_groups={
                key: frozenset(value) for key, value in tag_to_groups.items()
            },
            group_to_tags=group_to_tags,
        )

    def groups_for(self, tag: str) -> frozenset[str]:
        """Return the match groups a tag belongs to (empty for unknown tags)."""
        return self.tag_to_groups.get(normalize_tag(tag), frozenset())

    def compatible(self, tag_a: str, tag_b: str) -> bool:
        """Return true when the tags are identical or share a match group."""
        if normalize_tag(tag_a) == normalize_tag(tag_b):
            return True
        return not self.groups_for(tag_a).isdisjoint(self.groups_for(tag_b))

    def related_tags(self, tag: str) -> frozenset[str]:
        """Return normalised tags sharing at least one group with ``tag``."""
        related = {normalize_tag(tag)}
        for group in self.groups_for(tag):
            related.update(self.group_to_tags[group])
        return frozenset(related)


DEFAULT_TAG_INDEX = TagIndex.build(MATCH_GROUPS)


def match_groups(tag: str) -> frozenset[str]:
    """Return the match groups of a tag using the default index."""
    return DEFAULT_TAG_INDEX.groups_for(tag)


def compatible(tag_a: str, tag_b: str) -> bool:
    """Check whether two tags match using the default index."""
    return DEFAULT_TAG_INDEX.compatible(tag_a, tag_b)


def all_subjects() -> list[str]:
    """Return catalog subjects in display order without duplicates."""
    seen: set[str] = set()
    subjects: list[str] = []
    for tags in SUBJECT_CATEGORIES.values():
        for tag in tags:
            if tag not in seen:
                seen.add(tag)
                subjects.append(tag)
    return subjects
