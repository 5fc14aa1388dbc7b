# Configuration package for the War Tracker
