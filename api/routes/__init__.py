from api.routes import books, generate, outlines, user, video

ROUTERS = [
    generate.router,
    video.router,
    books.router,
    outlines.router,
    user.router,
]
