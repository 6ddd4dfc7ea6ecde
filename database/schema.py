# ======================= DECK TABLES ==========================

ID_COL = 'FlashcardID'
SIDE_A_COL = 'FlashcardSideA'
SIDE_B_COL = 'FlashcardSideB'
SIDE_C_COL = 'FlashcardSideC'
TAGS_COL = 'Tags'
DATE_CREATED_COL = 'DateCreated'
CREATED_BY_COL = 'CreatedBy'
STUDY_CONFIG_COL = 'StudyConfig'

# Structured media fields, filled in by the multimedia service
AUDIO_URL_COL = 'AudioUrl'
IMAGE_URL_COL = 'ImageUrl'
ATTRIBUTION_COL = 'Attribution'

DECK_HEADERS = [
    ID_COL, SIDE_A_COL, SIDE_B_COL, SIDE_C_COL,
    TAGS_COL, DATE_CREATED_COL, CREATED_BY_COL, STUDY_CONFIG_COL,
]

REQUIRED_COLUMNS = [ID_COL, SIDE_A_COL, SIDE_B_COL]

MEDIA_COLUMNS = [AUDIO_URL_COL, IMAGE_URL_COL, ATTRIBUTION_COL]

# ======================= PROGRESS ==========================

RATING_SUFFIX = '_Rating'
LAST_REVIEW_SUFFIX = '_LastReview'
NEXT_DUE_SUFFIX = '_NextDue'


def progress_column_names(username):
    """The per-user column triple, in creation order."""
    return [
        f'{username}{RATING_SUFFIX}',
        f'{username}{LAST_REVIEW_SUFFIX}',
        f'{username}{NEXT_DUE_SUFFIX}',
    ]


# ======================= SYSTEM ==========================

# Tables that live in the store but are not decks
SYSTEM_TABLES = {'Config', 'Classes'}
INTERNAL_PREFIX = '_'

CACHE_TABLE = '_cache'

cache_schema = f'''
    CREATE TABLE IF NOT EXISTS {CACHE_TABLE} (
        cache_key TEXT PRIMARY KEY,
        data TEXT NOT NULL,
        created_at REAL NOT NULL
    )
'''

# ======================= SAMPLE DECK ==========================

SAMPLE_DECK = 'Sample_Deck'

SAMPLE_CARDS = [
    ('What is the capital of France?', 'Paris', 'Hint: European city',
     'geography,europe', '{"showSideB":true, "showSideC":true, "autoplayAudio":false}'),
    ('What is 2 + 2?', '4', '',
     'math,basics', '{"showSideB":true, "showSideC":false, "autoplayAudio":false}'),
    ('Who wrote "Romeo and Juliet"?', 'William Shakespeare', 'Famous English playwright',
     'literature,classics', '{"showSideB":true, "showSideC":true, "autoplayAudio":true}'),
    ('What is H₂O (H2O)?', 'Water', 'Chemical formula',
     'science,chemistry', '{"showSideB":true, "showSideC":true, "autoplayAudio":false}'),
    ('What is the largest planet in our solar system?', 'Jupiter', 'A gas giant',
     'science,astronomy', 'true'),
]
