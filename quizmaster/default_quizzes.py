"""
Bundled quizzes available without any import.
"""
import random
from typing import List, Optional

from .models import Question, QuizDefinition


def _q(qid: str, text: str, options: List[str], correct: int, category: str) -> Question:
    return Question(id=qid, text=text, options=options, correct_index=correct, category=category)


SCIENCE_QUESTIONS = [
    _q('s1', 'What is the chemical symbol for gold?', ['Au', 'Ag', 'Fe', 'Cu'], 0, 'Science'),
    _q('s2', 'What planet is known as the Red Planet?', ['Venus', 'Mars', 'Jupiter', 'Saturn'], 1, 'Science'),
    _q('s3', 'What is the speed of light approximately?', ['300,000 km/s', '150,000 km/s', '450,000 km/s', '600,000 km/s'], 0, 'Science'),
    _q('s4', 'What is the powerhouse of the cell?', ['Nucleus', 'Ribosome', 'Mitochondria', 'Golgi body'], 2, 'Science'),
    _q('s5', 'Which gas do plants absorb from the atmosphere?', ['Oxygen', 'Nitrogen', 'Carbon Dioxide', 'Hydrogen'], 2, 'Science'),
    _q('s6', 'What is the hardest natural substance on Earth?', ['Gold', 'Iron', 'Diamond', 'Platinum'], 2, 'Science'),
    _q('s7', 'How many bones are in the adult human body?', ['196', '206', '216', '226'], 1, 'Science'),
    _q('s8', 'What is the largest organ in the human body?', ['Heart', 'Liver', 'Brain', 'Skin'], 3, 'Science'),
    _q('s9', 'What type of energy does the Sun primarily emit?', ['Kinetic', 'Nuclear', 'Electromagnetic', 'Chemical'], 2, 'Science'),
    _q('s10', 'What is the chemical formula for water?', ['HO2', 'H2O', 'H2O2', 'OH'], 1, 'Science'),
    _q('s11', 'Which element has the atomic number 1?', ['Helium', 'Hydrogen', 'Lithium', 'Carbon'], 1, 'Science'),
    _q('s12', 'What is the boiling point of water in Celsius?', ['90°C', '100°C', '110°C', '120°C'], 1, 'Science'),
]

MATH_QUESTIONS = [
    _q('m1', 'What is the value of π (pi) to two decimal places?', ['3.12', '3.14', '3.16', '3.18'], 1, 'Math'),
    _q('m2', 'What is the square root of 144?', ['10', '11', '12', '13'], 2, 'Math'),
    _q('m3', 'What is 15% of 200?', ['20', '25', '30', '35'], 2, 'Math'),
    _q('m4', 'What is the next prime number after 7?', ['9', '10', '11', '13'], 2, 'Math'),
    _q('m5', 'What is 2^10?', ['512', '1024', '2048', '4096'], 1, 'Math'),
    _q('m6', 'What is the sum of interior angles of a triangle?', ['90°', '180°', '270°', '360°'], 1, 'Math'),
    _q('m7', 'What is the factorial of 5 (5!)?', ['60', '100', '120', '150'], 2, 'Math'),
    _q('m8', 'What is the LCM of 4 and 6?', ['8', '10', '12', '24'], 2, 'Math'),
    _q('m9', 'How many sides does a hexagon have?', ['5', '6', '7', '8'], 1, 'Math'),
    _q('m10', 'What is log₁₀(1000)?', ['2', '3', '4', '10'], 1, 'Math'),
]

GENERAL_QUESTIONS = [
    _q('g1', 'What is the largest ocean on Earth?', ['Atlantic', 'Indian', 'Pacific', 'Arctic'], 2, 'GK'),
    _q('g2', 'Which country has the most population?', ['USA', 'India', 'China', 'Indonesia'], 1, 'GK'),
    _q('g3', 'What is the capital of Australia?', ['Sydney', 'Melbourne', 'Canberra', 'Perth'], 2, 'GK'),
    _q('g4', 'Who painted the Mona Lisa?', ['Van Gogh', 'Da Vinci', 'Picasso', 'Michelangelo'], 1, 'GK'),
    _q('g5', 'What is the longest river in the world?', ['Amazon', 'Nile', 'Yangtze', 'Mississippi'], 1, 'GK'),
    _q('g6', 'Which planet has the most moons?', ['Jupiter', 'Saturn', 'Uranus', 'Neptune'], 1, 'GK'),
    _q('g7', 'What year did World War II end?', ['1943', '1944', '1945', '1946'], 2, 'GK'),
    _q('g8', 'What is the smallest country in the world?', ['Monaco', 'Vatican City', 'San Marino', 'Liechtenstein'], 1, 'GK'),
    _q('g9', "Which element is most abundant in Earth's atmosphere?", ['Oxygen', 'Carbon', 'Nitrogen', 'Hydrogen'], 2, 'GK'),
    _q('g10', 'What is the currency of Japan?', ['Yuan', 'Won', 'Yen', 'Ringgit'], 2, 'GK'),
]

TECH_QUESTIONS = [
    _q('t1', 'What does CPU stand for?', ['Central Processing Unit', 'Central Program Utility', 'Computer Personal Unit', 'Central Peripheral Unit'], 0, 'Tech'),
    _q('t2', 'What does HTML stand for?', ['Hyper Trainer Marking Language', 'HyperText Markup Language', 'HyperText Marketing Language', 'HyperTool Multi Language'], 1, 'Tech'),
    _q('t3', 'Which company created JavaScript?', ['Microsoft', 'Google', 'Netscape', 'Apple'], 2, 'Tech'),
    _q('t4', 'What is the binary representation of 10?', ['1000', '1010', '1100', '1001'], 1, 'Tech'),
    _q('t5', 'What does RAM stand for?', ['Read Access Memory', 'Random Access Memory', 'Run Application Memory', 'Random Application Module'], 1, 'Tech'),
    _q('t6', 'Which data structure uses FIFO?', ['Stack', 'Queue', 'Tree', 'Graph'], 1, 'Tech'),
    _q('t7', 'What is the time complexity of binary search?', ['O(n)', 'O(n²)', 'O(log n)', 'O(1)'], 2, 'Tech'),
    _q('t8', 'What does SQL stand for?', ['Structured Query Language', 'Simple Query Language', 'Standard Query Logic', 'System Query Language'], 0, 'Tech'),
    _q('t9', 'Which protocol is used for secure web browsing?', ['HTTP', 'FTP', 'HTTPS', 'SMTP'], 2, 'Tech'),
    _q('t10', 'What is the main function of an operating system?', ['Web browsing', 'Resource management', 'Photo editing', 'Gaming'], 1, 'Tech'),
]

RANDOM_MIX_SIZE = 15


def get_default_quizzes(rng: Optional[random.Random] = None) -> List[QuizDefinition]:
    """
    Build the bundled quizzes.

    The Random Mix quiz draws a fresh sample from all bundled questions on
    every call.
    """
    rng = rng or random.Random()
    all_questions = SCIENCE_QUESTIONS + MATH_QUESTIONS + GENERAL_QUESTIONS + TECH_QUESTIONS
    random_set = rng.sample(all_questions, RANDOM_MIX_SIZE)

    return [
        QuizDefinition('quiz_sci', 'Science Challenge', list(SCIENCE_QUESTIONS), 600, 'Science', '🔬'),
        QuizDefinition('quiz_math', 'Math Master', list(MATH_QUESTIONS), 480, 'Mathematics', '🔢'),
        QuizDefinition('quiz_gk', 'General Knowledge', list(GENERAL_QUESTIONS), 600, 'General', '🌍'),
        QuizDefinition('quiz_tech', 'Tech & CS', list(TECH_QUESTIONS), 600, 'Technology', '💻'),
        QuizDefinition('quiz_random', 'Random Mix', random_set, 900, 'Mixed', '🎲'),
    ]
