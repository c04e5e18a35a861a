# medtrack/exceptions.py


class MedtrackError(Exception):
    """호출한 쪽으로 전달되는 오류의 기본 클래스"""


class StorageError(MedtrackError):
    """
    로컬 DB를 쓸 수 없거나 저장에 실패함.

    str(error)는 사용자에게 그대로 보여줄 문구이고,
    드라이버 오류는 __cause__로 연결된다.
    """

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation


class CascadeDeleteError(StorageError):
    """
    약과 그 복용 기록을 함께 삭제하지 못함.
    아무것도 지워지지 않았다 (약 정보와 기록 모두 그대로 남아 있음).
    """
