import logging

from fibonacci_face.controller import AnalysisController

logger = logging.getLogger(__name__)

# The single application session, created on first use
controller = None


def get_controller():
    """
    Dependency function providing the application controller.
    Creates it if it does not exist yet.
    """
    global controller
    if controller is None:
        logger.info("Creating the analysis controller")
        controller = AnalysisController()
    return controller


def close_controller():
    global controller
    if controller is not None:
        controller.close()
        controller = None
