class BoardError(Exception):
    """Base class for board rule violations"""
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProjectMismatchError(BoardError):
    """Entity belongs to a different project"""


class EmptyBoardError(BoardError):
    """Operation needs at least one column"""


class InvalidParentError(BoardError):
    """Parent task is missing, foreign or would create a cycle"""


class TaskAlreadyOnBoardError(BoardError):
    """Task already has a linked item"""
    status_code = 409
