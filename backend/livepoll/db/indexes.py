# ensure indexes run at startup
async def create_indexes(db):
    await db.user.create_index("username", unique=True)

    await db.poll.create_index("pollId", unique=True)
    await db.poll.create_index([("createdAt", -1)])

    # ceremony state is keyed by username, one pending ceremony per user
    await db.regstate.create_index("username", unique=True)
    await db.loginstate.create_index("username", unique=True)
