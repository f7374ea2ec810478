import enum


class Stage(str, enum.Enum):
    TITLE = "title"
    IMAGE = "image"
    DESCRIPTION = "description"
    BODY = "body"


class PersistStep(str, enum.Enum):
    CREATE = "create"
    UPLOAD = "upload"
    BACKFILL = "backfill"


class GenerationError(Exception):
    """The generation service returned an empty result for a stage."""

    def __init__(self, stage: Stage, message: str | None = None):
        self.stage = stage
        self.message = message or f"Error generating {stage.value}"
        super().__init__(self.message)


class GenerationInProgressError(Exception):
    """A generation attempt is already running for this session."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Generation already in progress for session {session_id}")


class PersistError(Exception):
    def __init__(self, step: PersistStep, message: str):
        self.step = step
        self.message = message
        super().__init__(f"{step.value}: {message}")


class RecipeAccessError(Exception):
    """The supplied identity does not own the recipe."""

    def __init__(self, recipe_id: int):
        self.recipe_id = recipe_id
        super().__init__(f"Not authorized for recipe {recipe_id}")


class UnknownIngredientError(Exception):
    def __init__(self, ingredient_ids: list[int]):
        self.ingredient_ids = ingredient_ids
        super().__init__(f"Unknown ingredient ids: {ingredient_ids}")
