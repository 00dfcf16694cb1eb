def validation_error_response(err):
    """Format a marshmallow ValidationError as a 400 response"""
    return {"error": err.messages}, 400


def not_found_response(err):
    """Format a NotFoundError as a 404 response"""
    return {"error": err.message}, 404
