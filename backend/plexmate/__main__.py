from plexmate.bot.bot import run

run()
