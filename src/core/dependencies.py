from fastapi import Request

from service.transform_service import TransformService


def get_transform_service(request: Request) -> TransformService:
    """lifespan에서 만들어 app.state에 올려둔 TransformService를 꺼낸다.

    저장소/타이머가 프로세스 메모리에 있으므로 앱 전체가 같은 인스턴스를 공유한다.
    """
    return request.app.state.transform_service
